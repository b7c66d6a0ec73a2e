"""
Semantic type aliases for the traffic controller.

Raw ``str``/``int``/``float`` values that carry a specific meaning across module
boundaries get a name here so signatures read in domain terms.
"""

from typing import TypeAlias

# Time types
Timestamp: TypeAlias = float
DurationSeconds: TypeAlias = float

# Identity types
ClusterName: TypeAlias = str
NamespaceName: TypeAlias = str
ObjectName: TypeAlias = str
ObjectUID: TypeAlias = str
ResourceVersion: TypeAlias = str

# DNS types
HostName: TypeAlias = str
DnsSuffix: TypeAlias = str
HealthCheckId: TypeAlias = str

# Weight types
WeightPercent: TypeAlias = int
WeightVersion: TypeAlias = int

# Annotation types
AnnotationKey: TypeAlias = str
AnnotationValue: TypeAlias = str
