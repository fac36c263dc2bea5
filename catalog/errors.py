"""Errors raised by the component catalog."""


class CatalogError(Exception):
    """Base class for catalog failures."""


class DuplicateIdError(CatalogError):
    """A component with the same id is already stored."""

    def __init__(self, component_id: str):
        super().__init__(f"Component already exists: {component_id}")
        self.component_id = component_id


class ComponentNotFoundError(CatalogError):
    def __init__(self, component_id: str):
        super().__init__(f"Component not found: {component_id}")
        self.component_id = component_id


class DimensionMismatchError(CatalogError):
    """Two vectors that must share a dimensionality do not."""

    def __init__(self, expected: int, actual: int, kind: str = ""):
        label = f"{kind} " if kind else ""
        super().__init__(
            f"Dimension mismatch for {label}embedding: expected {expected}, got {actual}"
        )
        self.expected = expected
        self.actual = actual
        self.kind = kind
