from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable

from jobboard.models import Coordinate


@dataclass
class GeocodingStats:
    total: int = 0
    successful: int = 0
    failed: int = 0


@dataclass
class GeocodingResult:
    coordinates: dict[str, Coordinate] = field(default_factory=dict)
    stats: GeocodingStats = field(default_factory=GeocodingStats)


class GeocoderBase(ABC):
    @abstractmethod
    def geocode(self, label: str) -> Coordinate | None:
        pass

    def geocode_many(self, labels: Iterable[str], limit: int = 20) -> GeocodingResult:
        """Resolve the first ``limit`` labels; the rest are not attempted."""
        labels = list(labels)[:limit]
        result = GeocodingResult(stats=GeocodingStats(total=len(labels)))
        for label in labels:
            coord = self.geocode(label)
            if coord is None:
                result.stats.failed += 1
                continue
            result.coordinates[label] = coord
            result.stats.successful += 1
        return result
