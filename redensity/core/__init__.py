"""
RED core
========

    timestamp.py    Logical clock
    observation.py  Instance + distance vector + timestamp
    gaussian.py     Sample statistics, jittered inverse, Mahalanobis distance
    cluster.py      Candidate / representative clusters
    layer.py        Routing, promotion, garbage collection
    landmarks.py    Landmark synthesis and distance-vector projection
    decoder.py      Per-attribute decoders for the correction factor
    red.py          The RED estimator
"""

from redensity.core.timestamp import Timestamp, LogicalClock
from redensity.core.observation import Observation
from redensity.core.cluster import Cluster, ClusterKind, MAX_BUFFER_SIZE
from redensity.core.layer import Layer, LayerStats
from redensity.core.landmarks import AttributeRanges, Projection, select_landmarks
from redensity.core.decoder import Decoder
from redensity.core.red import RED, INITIALIZATION_BATCH, QUERY_EVIDENCE_FLOOR

__all__ = [
    'Timestamp', 'LogicalClock', 'Observation',
    'Cluster', 'ClusterKind', 'MAX_BUFFER_SIZE',
    'Layer', 'LayerStats',
    'AttributeRanges', 'Projection', 'select_landmarks',
    'Decoder',
    'RED', 'INITIALIZATION_BATCH', 'QUERY_EVIDENCE_FLOOR',
]
