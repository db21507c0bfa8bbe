"""OTLP/JSON encoding of single metric points."""

from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Iterable, Mapping

from pizza_metrics.core.errors import EncodingError

SOURCE_ATTRIBUTE = "source"
AGGREGATION_TEMPORALITY = "AGGREGATION_TEMPORALITY_CUMULATIVE"

Attributes = Mapping[str, Any] | Iterable[tuple[str, Any]]


@dataclass(frozen=True, slots=True)
class MetricPoint:
    """One metric value as it is sent to the collector."""

    name: str
    value: int
    attributes: tuple[tuple[str, str], ...]
    timestamp_ns: int


def coerce_value(value: Any) -> int:
    """Return ``value`` as the integer sent in ``asInt``.

    Integers pass through. Floats and decimals are rounded to the nearest
    integer, halves away from zero, using their decimal string form so that
    ``2.5`` becomes ``3`` and ``37.49`` becomes ``37``.
    """

    if isinstance(value, bool):
        raise EncodingError(f"boolean is not a metric value: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        try:
            decimal = Decimal(str(value))
        except InvalidOperation as exc:
            raise EncodingError(f"cannot encode {value!r}") from exc
        if not decimal.is_finite():
            raise EncodingError(f"non-finite metric value: {value!r}")
        return int(decimal.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    raise EncodingError(f"unsupported metric value type {type(value).__name__}")


class OtlpEncoder:
    """Build one-point cumulative sum payloads tagged with a source label.

    Timestamps come from ``time.time_ns``, which already has nanosecond
    resolution, so no millisecond scaling is applied. Pass ``clock`` to pin
    the timestamp in tests.
    """

    def __init__(self, source: str, *, clock: Callable[[], int] = time.time_ns) -> None:
        if not source:
            raise ValueError("source label must not be empty")
        self.source = source
        self._clock = clock

    def point(self, name: str, value: Any, attributes: Attributes | None = None) -> MetricPoint:
        if not name:
            raise EncodingError("metric name must not be empty")

        items = attributes.items() if isinstance(attributes, Mapping) else (attributes or ())
        merged: dict[str, str] = {}
        for key, attr_value in items:
            if key == SOURCE_ATTRIBUTE:
                continue
            merged[str(key)] = str(attr_value)
        merged[SOURCE_ATTRIBUTE] = self.source

        return MetricPoint(
            name=name,
            value=coerce_value(value),
            attributes=tuple(merged.items()),
            timestamp_ns=int(self._clock()),
        )

    def encode(self, name: str, value: Any, attributes: Attributes | None = None) -> dict[str, Any]:
        return self.to_payload(self.point(name, value, attributes))

    @staticmethod
    def to_payload(point: MetricPoint) -> dict[str, Any]:
        data_point = {
            "asInt": point.value,
            "timeUnixNano": point.timestamp_ns,
            "attributes": [
                {"key": key, "value": {"stringValue": value}} for key, value in point.attributes
            ],
        }
        return {
            "resourceMetrics": [
                {
                    "scopeMetrics": [
                        {
                            "metrics": [
                                {
                                    "name": point.name,
                                    "unit": "1",
                                    "sum": {
                                        "dataPoints": [data_point],
                                        "aggregationTemporality": AGGREGATION_TEMPORALITY,
                                        "isMonotonic": True,
                                    },
                                }
                            ]
                        }
                    ]
                }
            ]
        }
