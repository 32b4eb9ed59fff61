"""
Local minima of a noisy 1-D curve ranked by topological persistence.
"""

import math
from typing import List, Sequence

import numpy as np


def find_persistent_local_minima(values: Sequence[float]) -> List[int]:
    """
    Return the indices of the local minima of ``values``, most persistent first.

    Points are added in order of increasing value; each local minimum starts
    a component, and when two components meet the one with the higher minimum
    dies. Persistence is the value at which a minimum's component dies minus
    the minimum itself; the global minimum never dies. Ties in persistence
    are broken by index.
    """
    values = np.asarray(values, dtype=float)
    n = len(values)
    if n == 0:
        return []

    order = np.argsort(values, kind='stable')
    parent = [-1] * n          # -1 = not yet added
    component_min = [0] * n    # index of the minimum, valid at roots
    persistence = {}

    def find(i):
        root = i
        while parent[root] != root:
            root = parent[root]
        while parent[i] != root:
            parent[i], i = root, parent[i]
        return root

    for idx in order.tolist():
        parent[idx] = idx
        component_min[idx] = idx
        for neighbor in (idx - 1, idx + 1):
            if neighbor < 0 or neighbor >= n or parent[neighbor] == -1:
                continue
            root_a = find(idx)
            root_b = find(neighbor)
            if root_a == root_b:
                continue
            min_a = component_min[root_a]
            min_b = component_min[root_b]
            # the younger (higher) minimum dies at the current value
            if (values[min_a], min_a) > (values[min_b], min_b):
                dying, survivor, survivor_root, dying_root = min_a, min_b, root_b, root_a
            else:
                dying, survivor, survivor_root, dying_root = min_b, min_a, root_a, root_b
            persistence[dying] = values[idx] - values[dying]
            parent[dying_root] = survivor_root
            component_min[survivor_root] = survivor

    # points merged into a lower neighbor on arrival die with zero persistence
    minima = [i for i, p in persistence.items() if p > 0]
    global_min = int(order[0])
    persistence[global_min] = math.inf
    if global_min not in minima:
        minima.append(global_min)

    minima.sort(key=lambda i: (-persistence[i], i))
    return minima


__all__ = ['find_persistent_local_minima']
