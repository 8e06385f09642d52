# Deep research agent package
from .pipeline import MarketValidationPipeline, create_deep_research_graph, run_market_validation
from .validator import validate_minimal_shape

__all__ = [
    "MarketValidationPipeline",
    "create_deep_research_graph",
    "run_market_validation",
    "validate_minimal_shape",
]
