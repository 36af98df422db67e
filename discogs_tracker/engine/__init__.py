"""
Engine package — analytics over the accumulated price history.
"""

from discogs_tracker.engine.demand import compute_demand
from discogs_tracker.engine.history import price_history
from discogs_tracker.engine.trends import compute_trends
from discogs_tracker.engine.value import collection_value

__all__ = ["collection_value", "compute_demand", "compute_trends", "price_history"]
