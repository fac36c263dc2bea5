"""Design-to-code pipeline for Figma component exports."""
