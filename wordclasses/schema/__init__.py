# wordclasses/schema/__init__.py
from .cluster import ClusterConfig, ClusterStats, IterationStats, OutputFormat
