"""Summary prompt construction and summary message formatting."""

from collections.abc import Sequence

from cria.core.types import Message, Role, Text, ToolCall, ToolResult

SUMMARY_PREFIX = "[Summary of earlier conversation]\n"

SUMMARY_SYSTEM_PROMPT = (
    "You are a conversation summarizer. Create a concise summary that captures "
    "the key points and context needed to continue the conversation. Be brief "
    "but preserve essential information."
)

SUMMARY_REQUEST = "Summarize the conversation above."
SUMMARY_UPDATE_REQUEST = (
    "Update the summary based on the previous summary and the conversation above."
)


def format_messages_for_summary(messages: Sequence[Message]) -> str:
    """Format messages into text for a summarization prompt.

    Args:
        messages: Messages to format

    Returns:
        Formatted conversation text
    """
    lines = []
    for msg in messages:
        if msg.role == Role.TOOL:
            for part in msg.children:
                if isinstance(part, ToolResult):
                    lines.append(f"TOOL[{part.tool_call_id}]: {part.output}")
            continue

        lines.append(f"{msg.role.value.upper()}: {msg.text}")

        # Include tool calls if present
        for part in msg.children:
            if isinstance(part, ToolCall):
                lines.append(f"  -> {part.tool_name}({part.input})")

    return "\n\n".join(lines)


def build_summarize_prompt(
    messages: Sequence[Message], existing_summary: str | None = None
) -> list[Message]:
    """Build the message list for the summarization model call.

    Args:
        messages: Messages to summarize
        existing_summary: Previous summary to update, if any

    Returns:
        Messages for the summarizer: instructions, prior summary, the
        conversation, and the request.
    """
    prompt = [Message(Role.SYSTEM, (Text(SUMMARY_SYSTEM_PROMPT),))]
    if existing_summary:
        prompt.append(
            Message(Role.ASSISTANT, (Text(f"Current summary:\n{existing_summary}"),))
        )
    prompt.append(Message(Role.USER, (Text(format_messages_for_summary(messages)),)))
    prompt.append(
        Message(
            Role.USER,
            (Text(SUMMARY_UPDATE_REQUEST if existing_summary else SUMMARY_REQUEST),),
        )
    )
    return prompt


def create_summary_message(summary_text: str, role: Role = Role.SYSTEM) -> Message:
    """Create the message that replaces a summarized scope's content.

    Args:
        summary_text: The generated summary
        role: Role for the summary message

    Returns:
        Message with the prefixed summary text
    """
    return Message(role=role, children=(Text(f"{SUMMARY_PREFIX}{summary_text}"),))
