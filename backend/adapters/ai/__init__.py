# AI Adapters
# Anthropic integration

from .anthropic_adapter import (
    AnthropicScaffoldService,
    GeneratedScaffold,
    build_scaffold,
    generate_project_name,
    scaffold_ai_service,
)

__all__ = [
    "AnthropicScaffoldService",
    "scaffold_ai_service",
    "GeneratedScaffold",
    "build_scaffold",
    "generate_project_name",
]
