from .records import (  # noqa: F401
    DEFAULT_AREA_COLOR,
    DEFAULT_LANDMARK_COLOR,
    NEW_AREA_DEFAULTS,
    NEW_LANDMARK_DEFAULTS,
    AreaRecord,
    LandmarkRecord,
    LatLng,
    Polygon,
    comparable,
    merge,
    normalize_fields,
    to_payload,
)
from .geojson import area_from_feature, area_properties, to_featurecollection  # noqa: F401
