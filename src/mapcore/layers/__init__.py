"""Feature store — per-category containers of projected map features.

GeoJSON import lives in ``mapcore.layers.geojson``.
"""

from mapcore.layers.feature import Category, Feature
from mapcore.layers.store import FeatureLayer, FeatureStore, StoreChange

__all__ = ["Category", "Feature", "FeatureLayer", "FeatureStore", "StoreChange"]
