"""
Pipeline runner: configuration processing, orchestration and result mapping.
"""

from persuader.runner.configuration import (
    InvalidOptionsError,
    ProcessedConfiguration,
    process_configuration,
    validate_provider,
)
from persuader.runner.orchestrator import PipelineOrchestrator, persuade
from persuader.runner.result_processor import (
    error_result,
    format_result_metadata,
    get_execution_stats,
    process_result,
)

__all__ = [
    "InvalidOptionsError",
    "ProcessedConfiguration",
    "process_configuration",
    "validate_provider",
    "PipelineOrchestrator",
    "persuade",
    "error_result",
    "format_result_metadata",
    "get_execution_stats",
    "process_result",
]
