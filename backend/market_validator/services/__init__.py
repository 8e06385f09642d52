from .openai_client import CompletionRequest, OpenAISettings, ResponsesClient, load_openai_settings
from .text_processing import CompactIdea, process_idea_description
from .domain_registry import collect_domains_from_hypotheses, domain_of, extract_domains

__all__ = [
    "CompletionRequest",
    "OpenAISettings",
    "ResponsesClient",
    "load_openai_settings",
    "CompactIdea",
    "process_idea_description",
    "collect_domains_from_hypotheses",
    "domain_of",
    "extract_domains",
]
