from typing import Dict, List, Optional, Sequence

from eliza.domain.models.agent_state import Actor
from eliza.domain.models.memory import Media, Memory, now_ms

UNKNOWN_USER = "Unknown User"


def format_timestamp(created_at: int, now: Optional[int] = None) -> str:
    """Relative time for an epoch-ms timestamp"""
    now = now_ms() if now is None else now
    seconds = max(0, (now - created_at) // 1000)

    if seconds < 60:
        return "just now"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    days = hours // 24
    return f"{days} day{'s' if days != 1 else ''} ago"


def format_actors(actors: Sequence[Actor]) -> str:
    """One block per actor, joined by blank lines"""
    blocks = []
    for actor in actors:
        header = actor.name
        if actor.username:
            header += f" (@{actor.username})"
        if actor.details.tagline:
            header += f": {actor.details.tagline}"
        lines = [header]
        if actor.details.summary:
            lines.append(actor.details.summary)
        if actor.details.quote:
            lines.append(f'"{actor.details.quote}"')
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def format_attachments(attachments: Sequence[Media]) -> str:
    return "\n".join(
        f"ID: {a.id}\nName: {a.title}\nURL: {a.url}\nType: {a.source}\n"
        f"Description: {a.description}\nText: {a.text}"
        for a in attachments
    )


def format_messages(messages: Sequence[Memory], actors: Sequence[Actor], now: Optional[int] = None) -> str:
    """Oldest-to-newest transcript with relative times and action tags"""
    names: Dict[str, str] = {actor.id: actor.name for actor in actors}
    lines: List[str] = []

    for message in sorted(messages, key=lambda m: m.created_at):
        if not message.user_id:
            continue
        name = names.get(message.user_id) or UNKNOWN_USER
        content = message.content

        attachments = ""
        if content.attachments:
            attachments = " (Attachments: " + ", ".join(
                f"[{a.id} - {a.title} ({a.url})]" for a in content.attachments
            ) + ")"

        action = f" ({content.action})" if content.action and content.action != "null" else ""
        timestamp = format_timestamp(message.created_at, now)
        short_id = message.user_id[-5:]
        lines.append(f"({timestamp}) [{short_id}] {name}: {content.text}{attachments}{action}")

    return "\n".join(lines)


def get_actor_name(actors: Sequence[Actor], user_id: str) -> Optional[str]:
    for actor in actors:
        if actor.id == user_id:
            return actor.name
    return None
