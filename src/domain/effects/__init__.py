"""
Effects Subdomain

Everything needed to turn "apply effect X with parameters P" into a remote
node list: catalog entries, parameter kinds, node bindings, the binder and the
remote outcome classifier.
"""

from src.domain.effects.catalog import CatalogRegistry, EffectCatalog
from src.domain.effects.entities import EffectDefinition, SubmissionMode

__all__ = [
    "EffectDefinition",
    "SubmissionMode",
    "EffectCatalog",
    "CatalogRegistry",
]
