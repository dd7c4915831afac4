
from .finite_element import FiniteElement, ReferenceBasis
from .lagrange_fe import LagrangeFiniteElement, H1P0, H1P1, H1P2, H1P2B
from .crouzeix_raviart_fe import H1CR
from .bernardi_raugel_fe import H1BR
from .hdiv_moment_fe import HdivMomentElement
from .raviart_thomas_fe import HdivRT0, HdivRT1
from .brezzi_douglas_marini_fe import HdivBDM2
from .dofmap import DofMap, parse_dof_pattern
from .fe_vector import FEVector, FEVectorBlock
from .fe_matrix import FEMatrix, FEMatrixBlock
from .fe_space import FESpace
from .interpolation import integrate
