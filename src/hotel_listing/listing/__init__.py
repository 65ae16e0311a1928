"""Hotel listing pipeline: attribute lookups, aggregation, room selection and assembly."""

from .assembler import (
    Assembled,
    AssemblyOutcome,
    EntityAssembler,
    Excluded,
    ExclusionReason,
    Failed,
)
from .attributes import (
    AttributeStore,
    BulkAttributeStore,
    EntityAttributeStore,
    NaiveAttributeStore,
    build_attribute_store,
)
from .reviews import ReviewAggregator
from .rooms import (
    QueryRoomFinder,
    RoomDetailLoader,
    RoomFinder,
    ScanRoomFinder,
    SqliteRoomLoader,
    build_room_finder,
)
from .service import ListingService

__all__ = [
    "Assembled",
    "AssemblyOutcome",
    "AttributeStore",
    "BulkAttributeStore",
    "EntityAssembler",
    "EntityAttributeStore",
    "Excluded",
    "ExclusionReason",
    "Failed",
    "ListingService",
    "NaiveAttributeStore",
    "QueryRoomFinder",
    "ReviewAggregator",
    "RoomDetailLoader",
    "RoomFinder",
    "ScanRoomFinder",
    "SqliteRoomLoader",
    "build_attribute_store",
    "build_room_finder",
]
