import numpy as np

mesh_data = [
    {
        "node": np.array([[0, 0], [1, 0], [0, 1]], dtype=np.float64),
        "cell": np.array([[0, 1, 2]], dtype=np.int64),
        "area": 0.5,
    },
    {
        "node": np.array([[0, 0], [1, 0], [1, 1], [0, 1]], dtype=np.float64),
        "cell": np.array([[1, 2, 0], [3, 0, 2]], dtype=np.int64),
        "area": 1.0,
    },
    {
        "node": np.array([[0, 0], [1, 0], [1, 1], [0, 1], [2, 0], [2, 1]], dtype=np.float64),
        "cell": [[0, 1, 2, 3], [1, 4, 5], [1, 5, 2]],
        "area": 2.0,
    },
]
