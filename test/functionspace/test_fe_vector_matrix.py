import numpy as np
import pytest

from feasm.errors import DimensionMismatchError
from feasm.mesh import Mesh
from feasm.functionspace import FESpace, FEVector, FEMatrix, H1P1, H1P0


@pytest.fixture
def spaces():
    mesh = Mesh.from_box(nx=2, ny=2)
    return FESpace(mesh, H1P1(2)), FESpace(mesh, H1P0())


class TestFEVector:
    def test_blocks(self, spaces):
        V, Q = spaces
        x = FEVector([V, Q], names=['u', 'p'])
        assert len(x) == 2
        assert x.number_of_entries() == 26
        assert x[0].offset == 0 and x[0].last_index == 18
        assert x[1].offset == 18 and x[1].last_index == 26
        assert [b.name for b in x] == ['u', 'p']

    def test_blocks_share_memory(self, spaces):
        V, Q = spaces
        x = FEVector([V, Q])
        x[1][:] = 2.0
        x[0][3] = 1.0
        np.testing.assert_allclose(x.entries[18:], 2.0)
        assert x.entries[3] == 1.0
        x[1].fill(0.5)
        np.testing.assert_allclose(np.asarray(x[1]), 0.5)
        x.fill(0.0)
        np.testing.assert_allclose(x[1].array, 0.0)

    def test_entries_are_copied(self, spaces):
        V, Q = spaces
        entries = np.arange(26, dtype=np.float64)
        x = FEVector([V, Q], entries)
        x[0][0] = -1.0
        assert entries[0] == 0.0
        np.testing.assert_allclose(x[1].array, np.arange(18, 26))
        with pytest.raises(DimensionMismatchError):
            FEVector([V, Q], np.zeros(25))

    def test_block_interpolate(self, spaces):
        V, Q = spaces
        x = FEVector([V, Q])
        x[0].interpolate(lambda p: p)
        NN = V.mesh.number_of_nodes()
        np.testing.assert_allclose(x.entries[:NN], V.mesh.node[:, 0])
        np.testing.assert_allclose(x.entries[NN:2*NN], V.mesh.node[:, 1])
        np.testing.assert_allclose(x[1].array, 0.0)


class TestFEMatrix:
    def test_block_offsets(self, spaces):
        V, Q = spaces
        A = FEMatrix([V, Q])
        assert A.shape == (26, 26)
        assert A[1, 0].shape == (8, 18)
        A[1, 0].add(np.array([0, 1]), np.array([2]), np.array([[1.0], [2.0]]))
        A[0, 1].add(np.array([2]), np.array([0, 1]), np.array([[1.0, 2.0]]))
        M = A.toarray()
        assert M[18, 2] == 1.0 and M[19, 2] == 2.0
        assert M[2, 18] == 1.0 and M[2, 19] == 2.0
        np.testing.assert_allclose(M, M.T)

    def test_duplicates_are_summed(self, spaces):
        V, _ = spaces
        A = FEMatrix(V)
        block = A[0, 0]
        for _ in range(3):
            block.add(np.array([1, 2]), np.array([1, 2]), np.ones((2, 2)))
        assert A.number_of_triplets() == 12
        M = block.tocsr()
        assert M.shape == (18, 18)
        assert M.nnz == 4
        np.testing.assert_allclose(M.toarray()[1:3, 1:3], 3.0)

    def test_empty_and_clear(self, spaces):
        V, Q = spaces
        A = FEMatrix(V, Q)
        assert A.shape == (18, 8)
        assert A.tocsr().nnz == 0
        A[0, 0].add(np.array([0]), np.array([0]), np.array([[1.0]]))
        A.clear()
        assert A.number_of_triplets() == 0
        assert A.tocsr().shape == (18, 8)


if __name__ == "__main__":
    pytest.main(['./test_fe_vector_matrix.py'])
