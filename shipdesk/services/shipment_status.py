"""ShipDesk — Shipment status state machine.

Twelve canonical display states, five coarse buckets used for filtering,
and one normalizer that maps exact display strings and legacy
snake_case/camelCase tokens onto the canonical states. Transitions are
permissive: couriers report out-of-order and corrected statuses, so any
state may move to any other.
"""
import re
from enum import Enum


class ShipmentStatus(str, Enum):
    NEW = "New"
    ASSIGNED = "Assigned"
    IN_TRANSIT = "In Transit"
    UNDELIVERED = "Undelivered"
    AT_DESTINATION = "At Destination"
    OUT_FOR_DELIVERY = "Out for Delivery"
    SET_RTO = "Set RTO"
    DELIVERED = "Delivered"
    RTO_ACCEPTED = "RTO Accepted"
    RTO_IN_TRANSIT = "RTO In Transit"
    RTO_REACHED_AT_DESTINATION = "RTO Reached At Destination"
    RTO_DELIVERED = "RTO Delivered"


class StatusBucket(str, Enum):
    NEW = "new"
    ASSIGNED = "assigned"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    RTO = "rto"


BUCKETS: dict[StatusBucket, tuple[ShipmentStatus, ...]] = {
    StatusBucket.NEW: (ShipmentStatus.NEW,),
    StatusBucket.ASSIGNED: (ShipmentStatus.ASSIGNED,),
    StatusBucket.IN_TRANSIT: (
        ShipmentStatus.IN_TRANSIT,
        ShipmentStatus.UNDELIVERED,
        ShipmentStatus.AT_DESTINATION,
        ShipmentStatus.OUT_FOR_DELIVERY,
        ShipmentStatus.SET_RTO,
    ),
    StatusBucket.DELIVERED: (ShipmentStatus.DELIVERED,),
    StatusBucket.RTO: (
        ShipmentStatus.RTO_ACCEPTED,
        ShipmentStatus.RTO_IN_TRANSIT,
        ShipmentStatus.RTO_REACHED_AT_DESTINATION,
        ShipmentStatus.RTO_DELIVERED,
    ),
}

_BUCKET_OF: dict[ShipmentStatus, StatusBucket] = {
    status: bucket for bucket, statuses in BUCKETS.items() for status in statuses
}

_BY_LOWER: dict[str, ShipmentStatus] = {s.value.lower(): s for s in ShipmentStatus}

# Internal and historical tokens, keyed by canonicalize_token() output.
LEGACY_ALIASES: dict[str, ShipmentStatus] = {
    "new": ShipmentStatus.NEW,
    "unfulfilled": ShipmentStatus.NEW,
    "assigned": ShipmentStatus.ASSIGNED,
    "in_transit": ShipmentStatus.IN_TRANSIT,
    "intransit": ShipmentStatus.IN_TRANSIT,
    "undelivered": ShipmentStatus.UNDELIVERED,
    "at_destination": ShipmentStatus.AT_DESTINATION,
    "atdestination": ShipmentStatus.AT_DESTINATION,
    "out_for_delivery": ShipmentStatus.OUT_FOR_DELIVERY,
    "outfordelivery": ShipmentStatus.OUT_FOR_DELIVERY,
    "set_rto": ShipmentStatus.SET_RTO,
    "setrto": ShipmentStatus.SET_RTO,
    "delivered": ShipmentStatus.DELIVERED,
    "fulfilled": ShipmentStatus.DELIVERED,
    "rto_accepted": ShipmentStatus.RTO_ACCEPTED,
    "rto_initiated": ShipmentStatus.RTO_ACCEPTED,
    "rto": ShipmentStatus.RTO_IN_TRANSIT,
    "rto_in_transit": ShipmentStatus.RTO_IN_TRANSIT,
    "rto_intransit": ShipmentStatus.RTO_IN_TRANSIT,
    "rto_reached_at_destination": ShipmentStatus.RTO_REACHED_AT_DESTINATION,
    "rto_reached_atdestination": ShipmentStatus.RTO_REACHED_AT_DESTINATION,
    "rto_delivered": ShipmentStatus.RTO_DELIVERED,
}

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")


def canonicalize_token(value: object) -> str:
    """'atDestination' -> 'at_destination', ' RTO-initiated ' -> 'rto_initiated'."""
    text = "" if value is None else str(value).strip()
    text = _ACRONYM_BOUNDARY.sub(r"\1_\2", text)
    text = _CAMEL_BOUNDARY.sub(r"\1_\2", text).lower()
    return _NON_ALNUM_RUN.sub("_", text).strip("_")


def normalize_status(raw: object) -> ShipmentStatus | str:
    """
    Map any status string to its canonical state, or "" when unrecognized.

    Exact display strings (any casing) win over legacy tokens. Callers must
    treat "" as an invalid status rather than defaulting it.
    """
    text = "" if raw is None else str(raw).strip()
    if not text:
        return ""
    exact = _BY_LOWER.get(text.lower())
    if exact is not None:
        return exact
    return LEGACY_ALIASES.get(canonicalize_token(text), "")


def status_bucket(status: object) -> StatusBucket | None:
    canonical = normalize_status(status)
    if not canonical:
        return None
    return _BUCKET_OF[canonical]


def statuses_in_bucket(bucket: StatusBucket | str) -> tuple[ShipmentStatus, ...]:
    return BUCKETS[StatusBucket(bucket)]


def is_transition_allowed(from_status: object, to_status: object) -> bool:
    """Every canonical state may move to every other, including backwards."""
    return bool(normalize_status(to_status))


def display_status(raw: object) -> str:
    """normalize_status() as a plain string, for persistence and serialization."""
    status = normalize_status(raw)
    return status.value if status else ""
