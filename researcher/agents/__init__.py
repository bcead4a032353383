"""Research pipeline stages."""

from researcher.agents.base import (
    NULL_REPORTER,
    BaseAgent,
    ReportSynthesizer,
    SemanticExtractor,
    StageReporter,
    VisualResearcher,
)
from researcher.agents.catalog import COMPONENT_REGISTRIES, RegistryInfo
from researcher.agents.repo_analyst import RepoAnalystAgent
from researcher.agents.style_scout import StyleScoutAgent
from researcher.agents.architect import ArchitectAgent

__all__ = [
    "NULL_REPORTER",
    "BaseAgent",
    "ReportSynthesizer",
    "SemanticExtractor",
    "StageReporter",
    "VisualResearcher",
    "COMPONENT_REGISTRIES",
    "RegistryInfo",
    "RepoAnalystAgent",
    "StyleScoutAgent",
    "ArchitectAgent",
]
