
from .coordinates import cartesian, reference
