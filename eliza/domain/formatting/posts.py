from typing import Dict, List, Optional, Sequence

from eliza.domain.formatting.messages import UNKNOWN_USER, format_timestamp
from eliza.domain.models.agent_state import Actor
from eliza.domain.models.memory import Memory


def format_posts(
    messages: Sequence[Memory],
    actors: Sequence[Actor],
    conversation_header: bool = True,
    now: Optional[int] = None,
) -> str:
    """Messages grouped by room.

    Rooms are ordered by their latest message, newest first; messages inside
    a room are oldest first.
    """
    grouped: Dict[str, List[Memory]] = {}
    for message in messages:
        if message.room_id:
            grouped.setdefault(message.room_id, []).append(message)

    for room_messages in grouped.values():
        room_messages.sort(key=lambda m: m.created_at or 0)

    rooms = sorted(grouped.items(), key=lambda item: item[1][-1].created_at or 0, reverse=True)
    by_id = {actor.id: actor for actor in actors}

    blocks = []
    for room_id, room_messages in rooms:
        posts = []
        for message in room_messages:
            if not message.user_id:
                continue
            actor = by_id.get(message.user_id)
            name = actor.name if actor and actor.name else UNKNOWN_USER
            username = actor.username if actor and actor.username else "unknown"
            reply = f"\nIn reply to: {message.content.in_reply_to}" if message.content.in_reply_to else ""
            posts.append(
                f"Name: {name} (@{username})\n"
                f"ID: {message.id}{reply}\n"
                f"Date: {format_timestamp(message.created_at or 0, now)}\n"
                f"Text:\n{message.content.text}"
            )

        header = f"Conversation: {room_id[-5:]}\n" if conversation_header else ""
        blocks.append(header + "\n\n".join(posts))

    return "\n\n".join(blocks)
