"""
botsmith - Self-Repairing Conversational Bot Builder
======================================================

botsmith takes a generated bundle of slot types, slots and intents, creates
them on a conversational platform (Amazon Lex V2) and builds the bot. When
the platform rejects a resource, or a build fails, an LLM proposes the fix
and the pipeline tries again within fixed budgets:

    Parameter Collection  →  Create Slot Types  →  Create Intents
            →  Build  ─┬─→  Export (built)
                       └─→  Classify + Fix  →  Build again (at most 2 retries)

Architecture Layers (top to bottom):
    1. Facade               - Botsmith
    2. Orchestration Layer  - WorkflowEngine, stages, ResourceMutator, RepairOracle
    3. Infrastructure Layer - ArtifactRepository
    4. Integration Layer    - LLM providers, platforms, object stores

Quick Start:
    >>> from botsmith import Botsmith
    >>> async with Botsmith() as botsmith:
    ...     artifact = await botsmith.register_bot("PizzaBot", bundle)
    ...     built = await botsmith.run(artifact.id)
"""

# =============================================================================
# Package Version
# =============================================================================
__version__ = "0.1.0"

# =============================================================================
# Package-Level Exports
# =============================================================================
# For specific components, import from submodules directly:
#   from botsmith.core.config import BotsmithConfig
#   from botsmith.orchestration import ResourceMutator
# =============================================================================
from botsmith.facade import Botsmith

__all__ = ["Botsmith", "__version__"]
