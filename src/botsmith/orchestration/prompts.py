"""
botsmith.orchestration.prompts - Oracle Prompt Templates
==========================================================

Prompt text sent to the AI oracle and the helpers that render it:

    SYSTEM_PROMPT           Role given to the model on every call
    *_GUIDELINES            Per-resource-type rules the model must follow,
                            seeded as the first turn of a repair conversation
    *_SCHEMA                Compact request schemas, minified into prompts
    correction_prompt()     "This call failed with this error, fix the payload"
    classify_prompt()       "Which resources does this build failure name?"
    fix_prompt()            "Fix this resource so the build error goes away"
    extract_json()          Pull the answer out of a ```json fenced block

Every prompt ends with an empty ```json fence so the model answers in the
shape extract_json() expects.
"""

from __future__ import annotations

import json
import re
from typing import Any

from botsmith.core.enums import ResourceType
from botsmith.core.exceptions import OracleError
from botsmith.core.models import ResourceInventory, ResourceOperation


SYSTEM_PROMPT = "You are an expert on AWS Lex V2 API."

FIX_SYSTEM_PROMPT = (
    "You are an expert on AWS Lex V2 API. "
    "Your task is to fix issues in Lex resources based on error messages."
)

CLASSIFY_SYSTEM_PROMPT = (
    "You are an expert on AWS Lex V2 API. You have deep knowledge of the Lex V2 API "
    "schema, validation rules, and best practices. Your task is to analyze and fix "
    "issues in Lex resources while maintaining compliance with AWS specifications."
)

_JSON_FENCE = re.compile(r"```json\s*([\s\S]*?)\s*```")


# =============================================================================
# Guidelines
# =============================================================================

SLOT_TYPE_GUIDELINES = """Here are some guideline to use when resolving error:
1. regexFilter is only valid if "parentSlotTypeSignature" is specified. Remove "regexFilter" if parentSlotTypeSignature is not specified.
2. For a slot type with AMAZON.AlphaNumeric as its parent:
    a. These regular expression operators are not supported:
        a. Infinite repeaters: *, +, or {x,} with no upper bound.
        b. Wild card (.)
    b. Use a standard regular expression with only these characters:
        a. A-Z, a-z
        b. 0-9"""

SLOT_GUIDELINES = """Here are some guideline to use when resolving error:
1. If the slot is optional, remove 'slotCaptureSetting' but keep 'slotConstraint'.
2. Sample utterances must include context words.
    a. Bad:
        - {ArrivalCity}
    b. Good:
        - My destination is {ArrivalCity}
        - I want to fly to {ArrivalCity}
3. Separate a slot from the surrounding text with a whitespace character.
    a. Bad:
        - Flight from {DepartureCity}?
    b. Good:
        - When is my flight from {DepartureCity} ?
"""

INTENT_GUIDELINES = """Here are some guideline to use when resolving error:
1. Reference slots directly in a conditional expression, e.g. {age} instead of intent.slot.age.
2. The only functions allowed in a conditional expression are "fn.COUNT()" and "fn.IS_SET()". Do not make up functions.
3. The only boolean operators allowed in a conditional expression are "AND", "OR" and "NOT".
4. Use double quotes, not single quotes, in a conditional expression.
5. Response messages may reference slots but cannot contain conditional expressions.
6. Supported comparison operators are =, !=, <, <=, > and >=.
7. Sample utterances must include context words.
    a. Bad:
        - {ArrivalCity}
    b. Good:
        - My destination is {ArrivalCity}
8. Separate a slot from the surrounding text with a whitespace character.
    a. Bad:
        - flight from {DepartureCity}?
    b. Good:
        - When is my flight from {DepartureCity} ?
9. Built-in intents cannot have sampleUtterances added or removed and cannot have slots.
10. The built-in intents are:
    a. AMAZON.CancelIntent
    b. AMAZON.FallbackIntent
    c. AMAZON.HelpIntent
    d. AMAZON.KendraSearchIntent
    e. AMAZON.PauseIntent
    f. AMAZON.QnAIntent
    g. AMAZON.QinConnectIntent
    h. AMAZON.RepeatIntent
    i. AMAZON.ResumeIntent
    j. AMAZON.StartOverIntent
    k. AMAZON.StopIntent
11. Do not use "InvokeDialogCodeHook".
12. When referencing a slot in sampleUtterances use a slotName from <AvailableSlots>.
"""

_GUIDELINES = {
    ResourceType.SLOT_TYPE: SLOT_TYPE_GUIDELINES,
    ResourceType.SLOT: SLOT_GUIDELINES,
    ResourceType.INTENT: INTENT_GUIDELINES,
}


def guideline_for(resource_type: ResourceType) -> str:
    """Guideline prompt that seeds repair conversations for a resource type."""
    return _GUIDELINES[resource_type]


# =============================================================================
# Compact Request Schemas
# =============================================================================
# Trimmed descriptions of the Lex V2 Update* request shapes. They only need
# to tell the model which fields exist and how they nest.
# =============================================================================

_LOCATOR = {"botId": "string", "botVersion": "string", "localeId": "string"}

_MESSAGE_GROUP = {"message": {"plainTextMessage": {"value": "string"}}, "variations": ["message"]}

SLOT_TYPE_SCHEMA: dict[str, Any] = {
    **_LOCATOR,
    "slotTypeId": "string",
    "slotTypeName": "string (required)",
    "description": "string",
    "parentSlotTypeSignature": "AMAZON.AlphaNumeric | ...",
    "slotTypeValues": [{"sampleValue": {"value": "string"}, "synonyms": [{"value": "string"}]}],
    "valueSelectionSetting": {
        "resolutionStrategy": "OriginalValue | TopResolution | Concatenation",
        "regexFilter": {"pattern": "string"},
        "advancedRecognitionSetting": {"audioRecognitionStrategy": "UseSlotValuesAsCustomVocabulary"},
    },
}

SLOT_SCHEMA: dict[str, Any] = {
    **_LOCATOR,
    "intentId": "string (required)",
    "slotId": "string",
    "slotName": "string (required)",
    "description": "string",
    "slotTypeId": "string",
    "valueElicitationSetting": {
        "slotConstraint": "Required | Optional (required)",
        "defaultValueSpecification": {"defaultValueList": [{"defaultValue": "string"}]},
        "promptSpecification": {
            "messageGroups": [_MESSAGE_GROUP],
            "maxRetries": "integer",
            "allowInterrupt": "boolean",
        },
        "sampleUtterances": [{"utterance": "string"}],
        "slotCaptureSetting": {"captureNextStep": {}, "failureNextStep": {}},
    },
    "obfuscationSetting": {"obfuscationSettingType": "None | DefaultObfuscation"},
    "multipleValuesSetting": {"allowMultipleValues": "boolean"},
    "subSlotSetting": {
        "expression": "string",
        "slotSpecifications": {"<subSlotName>": {"slotTypeId": "string", "valueElicitationSetting": {}}},
    },
}

INTENT_SCHEMA: dict[str, Any] = {
    **_LOCATOR,
    "intentId": "string",
    "intentName": "string (required)",
    "description": "string",
    "parentIntentSignature": "string",
    "sampleUtterances": [{"utterance": "string"}],
    "dialogCodeHook": {"enabled": "boolean"},
    "fulfillmentCodeHook": {"enabled": "boolean", "active": "boolean"},
    "slotPriorities": [{"priority": "integer", "slotId": "string"}],
    "intentConfirmationSetting": {
        "promptSpecification": {"messageGroups": [_MESSAGE_GROUP], "maxRetries": "integer"},
        "declinationResponse": {"messageGroups": [_MESSAGE_GROUP]},
        "active": "boolean",
        "codeHook": {"enableCodeHookInvocation": "boolean", "active": "boolean"},
    },
    "intentClosingSetting": {"closingResponse": {"messageGroups": [_MESSAGE_GROUP]}, "active": "boolean"},
    "initialResponseSetting": {
        "initialResponse": {"messageGroups": [_MESSAGE_GROUP]},
        "nextStep": {"dialogAction": {"type": "ElicitSlot | ConfirmIntent | ..."}},
        "conditional": {
            "active": "boolean",
            "conditionalBranches": [{"name": "string", "condition": {"expressionString": "string"}}],
        },
        "codeHook": {"enableCodeHookInvocation": "boolean", "active": "boolean"},
    },
    "inputContexts": [{"name": "string"}],
    "outputContexts": [{"name": "string", "timeToLiveInSeconds": "integer", "turnsToLive": "integer"}],
}

_SCHEMAS = {
    ResourceType.SLOT_TYPE: ("SlotTypeSchema", SLOT_TYPE_SCHEMA),
    ResourceType.SLOT: ("SlotSchema", SLOT_SCHEMA),
    ResourceType.INTENT: ("IntentSchema", INTENT_SCHEMA),
}


def minify(document: Any) -> str:
    """Render a JSON document on one line without padding."""
    return json.dumps(document, separators=(",", ":"), default=str)


def schema_block(resource_type: ResourceType) -> str:
    """Schema for a resource type wrapped in its XML-style tag."""
    tag, schema = _SCHEMAS[resource_type]
    return f"<{tag}>\n{minify(schema)}\n</{tag}>"


# =============================================================================
# Prompt Builders
# =============================================================================

def correction_prompt(operation: ResourceOperation, payload: dict[str, Any], error_message: str) -> str:
    """Ask for a corrected payload after the platform rejected a call."""
    return (
        f"There is a call made to {operation.command_name} with the following payload\n"
        "## Payload\n"
        f"```json\n{minify(payload)}\n```\n"
        f"{schema_block(operation.resource_type)}\n"
        "## Error\n"
        f"And I got the following error: {error_message}\n"
        "Fix the payload based on the error and return the full JSON payload\n"
        "## Result\n"
        "```json\n```\n"
    )


def classify_prompt(reason: str, inventory: ResourceInventory) -> str:
    """Ask which registered resources a build failure reason refers to."""
    intents = "\n".join(
        f"- Intent Name :{name}, Slots: {','.join(slots)}"
        for name, slots in inventory.intents.items()
    )
    slot_types = "\n".join(f"- {name}" for name in inventory.slot_types)
    schemas = "\n".join(schema_block(t) for t in ResourceType)

    return (
        "I got this error when building Amazon Lex V2 Bot\n"
        "## Error\n"
        f"{json.dumps(reason)}\n"
        "<ResourcesContext>\n"
        f"## Intents\n{intents}\n"
        f"## SlotTypes\n{slot_types}\n"
        "</ResourcesContext>\n"
        f"{schemas}\n"
        "<Instructions>\n"
        "- Extract the intent, slot or slotType that needs to be modified from the error message.\n"
        "- Leave out any properties that cannot be extracted from the error message.\n"
        "- Do not add missing slots; remove slots from utterances instead.\n"
        "- Use the schemas to decide the resource type.\n"
        "- <ResourcesContext> lists every resource created in Lex.\n"
        '- Answer with {"type": "intent" | "slot" | "slotType", '
        '"resources": [{"slotName": ..., "intentName": ..., "slotTypeName": ...}]}\n'
        "</Instructions>\n"
        "## Output\n"
        "```json\n```\n"
    )


def fix_prompt(reason: str, resource: dict[str, Any], context: str) -> str:
    """Ask for a fixed resource given a build failure reason and its context."""
    return (
        "Instruction:\n"
        "- Plan how you want to fix the issue\n"
        "- Fix the current resource and return the updated resource\n"
        "## Current Resource\n"
        f"```json\n{minify(resource)}\n```\n"
        "## Error\n"
        f"{json.dumps(reason)}\n"
        "## Additional Context\n"
        f"{context}\n"
        "Fix the resource based on the error and return the full json\n"
        "## Fixed response\n"
        "```json\n```\n"
    )


# =============================================================================
# Answer Parsing
# =============================================================================

def extract_json(text: str) -> Any:
    """Parse the first ```json fenced block in ``text``.

    Raises:
        OracleError: If there is no fenced block or it is not valid JSON.
    """
    match = _JSON_FENCE.search(text)
    if not match or not match.group(1):
        raise OracleError("No JSON found in the text", error_code="ORACLE_NO_JSON")
    try:
        return json.loads(match.group(1))
    except json.JSONDecodeError as e:
        raise OracleError(
            f"Invalid JSON in the answer: {e.msg}",
            error_code="ORACLE_INVALID_JSON",
            details={"snippet": match.group(1)[:200]},
        ) from e
