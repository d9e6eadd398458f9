from typing import Iterable, Optional

from .records import AreaRecord, LandmarkRecord, NEW_AREA_DEFAULTS, Polygon, to_payload


def _area_feature(area: AreaRecord) -> dict:
    properties = to_payload(area)
    properties.pop("boundary", None)
    properties["kind"] = "area"
    return {
        "type": "Feature",
        "id": area.id,
        "geometry": area.boundary.to_geojson(),
        "properties": properties,
    }


def _landmark_feature(landmark: LandmarkRecord) -> dict:
    properties = to_payload(landmark)
    properties.pop("location", None)
    properties["kind"] = "landmark"
    return {
        "type": "Feature",
        "id": landmark.id,
        "geometry": {
            "type": "Point",
            "coordinates": [landmark.location.lng, landmark.location.lat],
        },
        "properties": properties,
    }


def to_featurecollection(
    areas: Iterable[AreaRecord] = (),
    landmarks: Iterable[LandmarkRecord] = (),
) -> dict:
    output = [_area_feature(a) for a in areas or ()]
    output.extend(_landmark_feature(lm) for lm in landmarks or ())
    return {"type": "FeatureCollection", "features": output}


AREA_PROPERTIES = (
    "name",
    "nameAr",
    "description",
    "descriptionAr",
    "color",
    "opacity",
    "projectCounts",
    "averagePrice",
    "salesVolume",
    "capitalAppreciation",
    "rentalYield",
)


def area_properties(feature: dict) -> dict:
    """Area fields carried in a feature's properties, keyed as on the wire."""

    properties = (feature or {}).get("properties") or {}
    return {
        key: properties[key]
        for key in AREA_PROPERTIES
        if properties.get(key) not in (None, "")
    }


def area_from_feature(feature: dict, **defaults) -> Optional[AreaRecord]:
    """Build a new (identity-less) area from a GeoJSON Polygon feature.

    Returns None for features without Polygon geometry. Only properties that
    name an area field are used; anything else in the feature is ignored.
    """

    geometry = (feature or {}).get("geometry") or {}
    if geometry.get("type") != "Polygon":
        return None
    data = dict(NEW_AREA_DEFAULTS)
    data.update(defaults)
    data.update(area_properties(feature))
    data["boundary"] = Polygon.model_validate(geometry)
    return AreaRecord.model_validate(data)
