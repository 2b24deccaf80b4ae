
import json
import numpy as np

from typing import Any

class NumpyEncoder(json.JSONEncoder):
    """
    JSON Encoder for agent snapshots.
    Collapses NumPy scalars and arrays to plain JSON values so the document
    reads back without any custom decoding.
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return float(obj)
        elif isinstance(obj, np.bool_):
            return bool(obj)
        elif isinstance(obj, np.ndarray):
            return obj.tolist()
        return super().default(obj)
