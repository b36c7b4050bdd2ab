from pod_extraction.extraction.factory import ExtractorFactory
from pod_extraction.extraction.orchestrator import Orchestrator, build_orchestrator
from pod_extraction.extraction.page_extractor import PageExtractor

__all__ = ["ExtractorFactory", "Orchestrator", "PageExtractor", "build_orchestrator"]
