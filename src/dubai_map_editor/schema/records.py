from __future__ import annotations

import re
from typing import Any, Dict, Literal, Mapping, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from shapely.affinity import translate as shapely_translate
from shapely.geometry import mapping, shape


Position = Tuple[float, float]
Ring = Tuple[Position, ...]
BBox = Tuple[float, float, float, float]

DEFAULT_AREA_COLOR = "#3B82F6"
DEFAULT_LANDMARK_COLOR = "#EF4444"

# Server-managed fields never take part in dirty comparison or request bodies.
SERVER_FIELDS = frozenset({"id", "created_at", "updated_at"})

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")


def _check_color(value: str) -> str:
    value = (value or "").strip()
    if not _HEX_COLOR.match(value):
        raise ValueError("color must be a hex color like #3B82F6")
    return value


class _Model(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )


class Polygon(_Model):
    """GeoJSON Polygon with closed rings of (lng, lat) positions."""

    type: Literal["Polygon"] = "Polygon"
    coordinates: Tuple[Ring, ...]

    @field_validator("coordinates")
    @classmethod
    def _close_rings(cls, rings: Tuple[Ring, ...]) -> Tuple[Ring, ...]:
        if not rings:
            raise ValueError("polygon needs an outer ring")
        closed = []
        for ring in rings:
            if ring and ring[0] != ring[-1]:
                ring = ring + (ring[0],)
            if len(ring) < 4:
                raise ValueError("polygon ring needs at least 4 positions")
            closed.append(ring)
        return tuple(closed)

    @classmethod
    def from_ring(cls, ring) -> "Polygon":
        return cls(coordinates=(tuple(tuple(p) for p in ring),))

    @property
    def outer_ring(self) -> Ring:
        return self.coordinates[0]

    def to_geojson(self) -> Dict[str, Any]:
        return {
            "type": "Polygon",
            "coordinates": [[list(p) for p in ring] for ring in self.coordinates],
        }

    def to_shape(self):
        return shape(self.to_geojson())

    def with_outer_ring(self, ring) -> "Polygon":
        outer = tuple(tuple(p) for p in ring)
        return Polygon(coordinates=(outer,) + self.coordinates[1:])

    def move_vertex(self, index: int, lng: float, lat: float) -> "Polygon":
        ring = list(self.outer_ring)
        last = len(ring) - 1
        if index < 0:
            index += last
        if index < 0 or index > last:
            raise IndexError(f"vertex {index} out of range")
        point = (float(lng), float(lat))
        if index in (0, last):
            # First and last position are the same vertex.
            ring[0] = point
            ring[last] = point
        else:
            ring[index] = point
        return self.with_outer_ring(ring)

    def translate(self, dlng: float, dlat: float) -> "Polygon":
        moved = shapely_translate(self.to_shape(), xoff=dlng, yoff=dlat)
        return Polygon.model_validate(mapping(moved))

    def bbox(self) -> BBox:
        lngs = [p[0] for p in self.outer_ring]
        lats = [p[1] for p in self.outer_ring]
        return (min(lngs), min(lats), max(lngs), max(lats))

    def centroid(self) -> Position:
        point = self.to_shape().centroid
        return (point.x, point.y)


class LatLng(_Model):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class AreaRecord(_Model):
    id: Optional[str] = None
    name: str = Field(min_length=1)
    name_ar: Optional[str] = None
    boundary: Polygon
    description: Optional[str] = None
    description_ar: Optional[str] = None
    area_type: Optional[str] = None
    wealth_level: Optional[str] = None
    cultural_attribute: Optional[str] = None
    color: str = DEFAULT_AREA_COLOR
    opacity: float = Field(default=0.3, ge=0, le=1)
    visible: bool = True
    display_order: int = 0
    # Market statistics
    project_counts: Optional[int] = None
    average_price: Optional[float] = None
    sales_volume: Optional[float] = None
    capital_appreciation: Optional[float] = None
    rental_yield: Optional[float] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("color")
    @classmethod
    def _color(cls, value: str) -> str:
        return _check_color(value)


class LandmarkRecord(_Model):
    id: Optional[str] = None
    name: str = Field(min_length=1)
    name_ar: Optional[str] = None
    location: LatLng
    landmark_type: str = Field(default="attraction", min_length=1)
    icon_name: str = "landmark"
    description: Optional[str] = None
    description_ar: Optional[str] = None
    year_built: Optional[int] = None
    website_url: Optional[str] = None
    image_url: Optional[str] = None
    color: str = DEFAULT_LANDMARK_COLOR
    size: Literal["small", "medium", "large"] = "medium"
    visible: bool = True
    display_order: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("color")
    @classmethod
    def _color(cls, value: str) -> str:
        return _check_color(value)


Record = Union[AreaRecord, LandmarkRecord]
R = TypeVar("R", AreaRecord, LandmarkRecord)

# Defaults for shapes drawn on the map.
NEW_AREA_DEFAULTS: Dict[str, Any] = {
    "name": "New District",
    "area_type": "residential",
    "wealth_level": "mid-range",
    "cultural_attribute": "family-oriented",
    "description": "",
    "color": DEFAULT_AREA_COLOR,
    "opacity": 0.3,
    "display_order": 0,
}

NEW_LANDMARK_DEFAULTS: Dict[str, Any] = {
    "name": "New Landmark",
    "landmark_type": "attraction",
    "icon_name": "landmark",
    "color": DEFAULT_LANDMARK_COLOR,
    "size": "medium",
    "display_order": 0,
}


def field_name(model: Type[BaseModel], key: str) -> str:
    """Resolve a snake_case or camelCase key to the model's field name."""

    fields = model.model_fields
    if key in fields:
        return key
    for name, info in fields.items():
        if info.alias == key:
            return name
    raise ValueError(f"unknown field for {model.__name__}: {key}")


def normalize_fields(model: Type[BaseModel], fields: Mapping[str, Any]) -> Dict[str, Any]:
    return {field_name(model, k): v for k, v in fields.items()}


def merge(record: R, fields: Mapping[str, Any]) -> R:
    """Shallow-merge `fields` into `record`, re-validating the result."""

    changes = normalize_fields(type(record), fields)
    if "id" in changes and changes["id"] != record.id:
        raise ValueError("record identity cannot be changed by an update")
    data = record.model_dump()
    data.update(changes)
    return type(record).model_validate(data)


def comparable(record: Record) -> Dict[str, Any]:
    return record.model_dump(exclude=set(SERVER_FIELDS))


def to_payload(record: Record, include_id: bool = False) -> Dict[str, Any]:
    exclude = {"created_at", "updated_at"}
    if not include_id:
        exclude.add("id")
    return record.model_dump(mode="json", by_alias=True, exclude=exclude)
