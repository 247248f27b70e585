"""Custom Prometheus metrics for Persuader.

Metrics live in the default registry; the host application decides whether
and where to expose them. Alert rules worth configuring:
- persuader_validation_failures_total (model output drifting from schema)
- persuader_provider_errors_total (provider instability)
- persuader_attempts_total{outcome="failure"} (high retry rate)
"""

from prometheus_client import Counter, Histogram

# === Attempt Metrics ===

attempts_total = Counter(
    "persuader_attempts_total",
    "Total attempts (prompt -> provider -> validation) by outcome",
    ["outcome"],
)
"""
Attempt counter.

Labels:
- outcome: success, validation_failure, provider_error
"""

# === Validation Metrics ===

validation_failures_total = Counter(
    "persuader_validation_failures_total",
    "Total validation failures by stage and failure mode",
    ["stage", "failure_mode"],
)
"""
Validation failures counter.

Labels:
- stage: json_parse, schema
- failure_mode: json_parse_failure, missing_required_fields, field_type_mismatch, ...
"""

# === Provider Metrics ===

provider_errors_total = Counter(
    "persuader_provider_errors_total",
    "Total provider call failures by provider and retryability",
    ["provider", "retryable"],
)

llm_latency_seconds = Histogram(
    "persuader_llm_latency_seconds",
    "Provider call latency in seconds",
    ["provider", "success"],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
)
"""
Provider latency histogram.

Buckets optimized for LLM inference (0.5s to 120s).
"""

llm_tokens_total = Counter(
    "persuader_llm_tokens_total",
    "Total tokens consumed by provider and type",
    ["provider", "token_type"],
)
"""
Token consumption counter.

Labels:
- provider: Provider adapter name
- token_type: input, output
"""

# === Enhancement Metrics ===

enhancement_rounds_total = Counter(
    "persuader_enhancement_rounds_total",
    "Total enhancement rounds by outcome",
    ["outcome"],
)
"""
Enhancement round counter.

Labels:
- outcome: accepted, rejected, invalid, error
"""
