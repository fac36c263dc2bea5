"""External collaborators: design parsing, classification, icons, LLM calls."""
