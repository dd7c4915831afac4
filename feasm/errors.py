
class ConfigurationError(ValueError):
    """An assembly was set up with an unsupported or inconsistent combination
    of element, geometry, operator, action or region."""


class DegenerateGeometryError(RuntimeError):
    """A mesh item has a zero or negative Jacobian determinant."""
    def __init__(self, item: int, det: float):
        super().__init__(f"Item {item} has a non-positive Jacobian "
                         f"determinant {det:.6e}; the mesh is corrupt.")
        self.item = item
        self.det = det


class DimensionMismatchError(ValueError):
    """A coefficient vector or destination does not fit the space it is
    used with."""
