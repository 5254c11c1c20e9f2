import logging
from typing import List

import numpy as np

from pad_analyzer.models import Component

logger = logging.getLogger(__name__)


def extract_components(mask: np.ndarray, value: np.ndarray, saturation: np.ndarray) -> List[Component]:
    """Return the 4-connected components of ``mask`` in row-major discovery order.

    ``value`` and ``saturation`` are per-pixel HSV planes of the same raster
    the mask was built from; each component carries their sums.
    """
    h, w = mask.shape
    n = h * w
    member = mask.ravel().tolist()
    values = value.ravel().tolist()
    saturations = saturation.ravel().tolist()
    visited = bytearray(n)
    components = []

    for seed in np.flatnonzero(mask.ravel()).tolist():
        if visited[seed]:
            continue
        visited[seed] = 1
        stack = [seed]
        pixels = 0
        min_x, min_y, max_x, max_y = w, h, -1, -1
        sum_value = 0.0
        sum_saturation = 0.0

        while stack:
            cur = stack.pop()
            y, x = divmod(cur, w)
            pixels += 1
            if x < min_x:
                min_x = x
            if x > max_x:
                max_x = x
            if y < min_y:
                min_y = y
            if y > max_y:
                max_y = y
            sum_value += values[cur]
            sum_saturation += saturations[cur]

            # left/right must stay on the same row
            if x + 1 < w:
                nb = cur + 1
                if member[nb] and not visited[nb]:
                    visited[nb] = 1
                    stack.append(nb)
            if x > 0:
                nb = cur - 1
                if member[nb] and not visited[nb]:
                    visited[nb] = 1
                    stack.append(nb)
            nb = cur + w
            if nb < n and member[nb] and not visited[nb]:
                visited[nb] = 1
                stack.append(nb)
            nb = cur - w
            if nb >= 0 and member[nb] and not visited[nb]:
                visited[nb] = 1
                stack.append(nb)

        components.append(Component(
            pixel_count=pixels,
            bbox=(min_x, min_y, max_x, max_y),
            sum_value=sum_value,
            sum_saturation=sum_saturation,
        ))

    logger.debug("Extracted %d components from %d mask pixels", len(components), int(np.count_nonzero(mask)))
    return components
