"""LifeTrack analytics - metric store, correlation engine, pattern detector."""
from .metrics import MetricStore
from .correlations import CorrelationEngine, pearson
from .patterns import PatternDetector
