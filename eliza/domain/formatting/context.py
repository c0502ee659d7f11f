from typing import Any, Mapping, Union

from jinja2 import Environment, meta

from eliza.domain.models.agent_state import State

# Prompts are plain text; autoescape stays off and trailing newlines are kept.
_PROMPT_ENV = Environment(autoescape=False, keep_trailing_newline=True)

STRING_ARRAY_FOOTER = """Respond with a JSON array containing the values in a JSON block formatted for markdown with this structure:
```json
[
  "value",
  "value"
]
```

Your response must include the JSON block."""

MESSAGE_HANDLER_FOOTER = """
Response format should be formatted in a JSON block like this:
```json
{ "user": "{{agent_name}}", "text": "string", "action": "string" }
```"""

MESSAGE_HANDLER_TEMPLATE = """# Action Examples
{{action_examples}}
(Action examples are for reference only. Do not use the information from them in your response.)

# Knowledge
{{knowledge}}

# Task: Generate dialog and actions for the character {{agent_name}}.
About {{agent_name}}:
{{bio}}
{{lore}}

{{providers}}

{{attachments}}

# Capabilities
Note that {{agent_name}} is capable of reading/seeing/hearing various forms of media, including images, videos, audio, plaintext and PDFs. Recent attachments have been included above under the "Attachments" section.

{{message_directions}}

{{recent_messages}}

{{actions}}

# Instructions: Write the next message for {{agent_name}}.
""" + MESSAGE_HANDLER_FOOTER

SHOULD_RESPOND_TEMPLATE = """# Task: Decide if {{agent_name}} should respond.
About {{agent_name}}:
{{bio}}

Response options are [RESPOND], [IGNORE] and [STOP].

{{recent_messages}}

# Instructions: Decide if {{agent_name}} should respond to the last message. Answer with one of [RESPOND], [IGNORE] or [STOP].
"""

EVALUATION_TEMPLATE = """TASK: Based on the conversation and conditions, determine which evaluation functions are appropriate to call.
Examples:
{{evaluator_examples}}

INSTRUCTIONS: You are helping me to decide which appropriate functions to call based on the conversation between {{sender_name}} and {{agent_name}}.

{{recent_messages}}

Evaluator Functions:
{{evaluators}}

TASK: Based on the most recent conversation, determine which evaluators functions are appropriate to call to call.
Include the name of evaluators that are relevant and should be called in the array
Available evaluator names to include are {{evaluator_names}}
""" + STRING_ARRAY_FOOTER


def add_header(header: str, body: str) -> str:
    """Prefix a non-empty body with a header; empty bodies stay empty"""
    if not body or not body.strip():
        return ""
    return f"{header}\n\n{body}"


def compose_context(state: Union[State, Mapping[str, Any]], template: str) -> str:
    """Render ``{{key}}`` placeholders from state values; missing keys render empty"""

    required = meta.find_undeclared_variables(_PROMPT_ENV.parse(template))
    values = {}
    for key in required:
        value = state.get(key, "") if isinstance(state, (State, Mapping)) else ""
        values[key] = "" if value is None else str(value)
    return _PROMPT_ENV.from_string(template).render(**values)
