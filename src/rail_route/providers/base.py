from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Optional

from rail_route.contracts.network import BBox, RailNetwork


class NetworkProvider(ABC):
    """Fetch raw rail infrastructure (nodes + ways) covering a bounding box."""

    @abstractmethod
    def fetch_network(self, bbox: BBox, cancel: Optional[threading.Event] = None) -> RailNetwork:
        raise NotImplementedError
