"""prepare_email_draft tool.

Performs no I/O: it echoes the draft back so the orchestrator can surface it
to the caller, which renders a "Save to Gmail Drafts" card.
"""
from typing import Any

from calendar_copilot.agent.context import ToolContext

TOOL_SCHEMA = {
    "type": "function",
    "function": {
        "name": "prepare_email_draft",
        "description": (
            "Prepare an email draft for the user to review. Call this after writing an email "
            "draft in your response; it will display a 'Save to Gmail Drafts' button in the UI "
            "so the user can save it with one click. Does not send or save anything automatically."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "to": {
                    "type": "string",
                    "description": (
                        "Recipient email address or display name (e.g. 'joe@company.com' or "
                        "'Joe Smith <joe@company.com>'). Omit if unknown."
                    ),
                },
                "subject": {"type": "string", "description": "Email subject line."},
                "body": {"type": "string", "description": "Full plain-text email body."},
            },
            "required": ["subject", "body"],
        },
    },
}


def execute(ctx: ToolContext, args: dict[str, Any]) -> dict[str, Any]:
    return {
        "prepared": True,
        "to": args.get("to"),
        "subject": args["subject"],
        "body": args["body"],
        "note": "A 'Save to Gmail Drafts' button will appear in the chat for the user to confirm.",
    }
