"""
Migrate Bot Example: Build a Bot and Repair a Failed Build
=============================================================

This example shows the whole pipeline against the in-memory platform:
a generated bundle of slot types and intents is registered, created on
the platform and built. The first build is scripted to fail, so the
oracle classifies the failure, the intent is repaired, and the second
build succeeds.

Nothing here talks to AWS. To run against Amazon Lex V2 and Bedrock set
``BOTSMITH_PLATFORM__PROVIDER=lex``, ``BOTSMITH_LLM__PROVIDER=bedrock``
and ``BOTSMITH_STORAGE__PROVIDER=s3`` instead of passing the fakes.

Usage:
    python examples/migrate_bot.py
"""

from __future__ import annotations

import asyncio

from botsmith.core.config import BotsmithConfig, PlatformConfig
from botsmith.core.models import ResourceBundle
from botsmith.facade import Botsmith
from botsmith.integrations.llm.mock import MockLLMProvider
from botsmith.integrations.platform.memory import InMemoryPlatform


BUNDLE = {
    "slotTypes": {
        "FlowerType": {
            "slotTypeName": "FlowerType",
            "slotTypeValues": [
                {"sampleValue": {"value": "roses"}},
                {"sampleValue": {"value": "tulips"}},
            ],
            "valueSelectionSetting": {"resolutionStrategy": "OriginalValue"},
        },
    },
    "intents": {
        "OrderFlowers": {
            "intentName": "OrderFlowers",
            "sampleUtterances": [
                {"utterance": "I would like to order some flowers"},
                {"utterance": "I want {flower}"},
            ],
            "slots": {
                "flower": {
                    "slotName": "flower",
                    "slotTypeName": "FlowerType",
                    "valueElicitationSetting": {"slotConstraint": "Required"},
                },
                "pickupDate": {
                    "slotName": "pickupDate",
                    "slotTypeName": "AMAZON.Date",
                    "valueElicitationSetting": {"slotConstraint": "Required"},
                },
            },
            "slotPriorities": [
                {"priority": 1, "slotName": "flower"},
                {"priority": 2, "slotName": "pickupDate"},
            ],
        },
        "Goodbye": {
            "intentName": "Goodbye",
            "sampleUtterances": [{"utterance": "bye"}, {"utterance": "I would like to order some flowers"}],
        },
    },
}


async def main() -> None:
    """Register a bundle, build it with one scripted failure, print the log."""
    config = BotsmithConfig(platform=PlatformConfig(poll_interval_seconds=0))

    platform = InMemoryPlatform()
    platform.fail_next_build(["Intent OrderFlowers: utterance 'I want {flower}' lacks context"])

    # The oracle names the failing intent; the fix itself falls back to the
    # mock's echo of the current resource.
    provider = MockLLMProvider()
    provider.queue_json({"type": "intent", "resources": [{"intentName": "OrderFlowers"}]})

    async with Botsmith(config, llm_provider=provider, platform=platform) as botsmith:
        bundle = ResourceBundle.model_validate(BUNDLE)
        artifact = await botsmith.register_bot("OrderFlowersBot", bundle)

        built = await botsmith.run(artifact.id)

        print("Bot Build")
        print("-" * 40)
        print(f"Artifact : {built.id}")
        print(f"Status   : {built.status.value}")
        print(f"Builds   : {platform.build_count}")
        print(f"Oracle   : {provider.call_count} calls")
        print(f"Export   : s3://{built.definition_location.bucket}/{built.definition_location.key}")
        print()
        print("Status Log:")
        for entry in built.status_messages:
            print(f"  [{entry.status.value:>11}] {entry.message}")


if __name__ == "__main__":
    asyncio.run(main())
