"""Core of the gator hub: document, transformations, nodes and configuration.

Modules
-------
errors           GatorError hierarchy with HTTP codes
logging          structlog configuration and context helpers
settings         GatorSettings (process settings, ``GATOR_`` env prefix)
paths            Slash-separated path tokens
tree             TreeStore, the raw JSON document
scripting        Evaluator protocol and the V8-backed JavaScriptEvaluator
transformations  TransformationDefinition and the resolving engine
model            Model, the serialised owner of document and engine
nodes            NodeRegistry, alias fan-out
config           Persisted HubConfig, load/save
hub              Hub, the composition root (import from ``gator.core.hub``)
"""

from gator.core.errors import ErrorCategory, GatorError
from gator.core.model import Model, WriteOutcome
from gator.core.paths import PathTokens, join_path, split_path
from gator.core.transformations import TransformationDefinition, TransformationEngine
from gator.core.tree import JsonValue, TreeStore

__all__ = [
    "ErrorCategory",
    "GatorError",
    "JsonValue",
    "Model",
    "PathTokens",
    "TransformationDefinition",
    "TransformationEngine",
    "TreeStore",
    "WriteOutcome",
    "join_path",
    "split_path",
]
