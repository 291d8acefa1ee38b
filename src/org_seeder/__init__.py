"""
Org Seeder - Synthetic organizational hierarchies for load testing.

Seeds Company -> Branch -> Department -> Employee data into a backing
store, either with parent id fields (relational style) or with separate
edge records (graph style), in memory-bounded chunks.
"""

from .binders import EdgeBinder, ReferenceBinder, RelationshipBinder, make_binder
from .config import ConnectionSettings, GenerationConfig, load_config
from .errors import ConfigError, GenerationCancelled, SeedError, SinkError
from .factory import EntityFactory
from .generator import HierarchyGenerator, generate_all
from .models import LEVELS, Edge, LevelSpec, ProgressEvent, Summary
from .sinks import InMemorySink, Neo4jSink, PostgresSink, Sink
from .writer import ChunkedBulkWriter

__version__ = "0.1.0"

__all__ = [
    # Orchestration
    "HierarchyGenerator",
    "generate_all",
    # Components
    "EntityFactory",
    "ChunkedBulkWriter",
    "RelationshipBinder",
    "ReferenceBinder",
    "EdgeBinder",
    "make_binder",
    # Model
    "LEVELS",
    "LevelSpec",
    "Edge",
    "ProgressEvent",
    "Summary",
    # Config
    "GenerationConfig",
    "ConnectionSettings",
    "load_config",
    # Sinks
    "Sink",
    "InMemorySink",
    "PostgresSink",
    "Neo4jSink",
    # Errors
    "SeedError",
    "ConfigError",
    "SinkError",
    "GenerationCancelled",
]
