from eliza.domain.action.action_registry import ActionRegistry, normalize_action_name
from eliza.domain.action.base_action import Action


async def _always(runtime, message, state):
    return True


def _registry(*actions):
    registry = ActionRegistry()
    for action in actions:
        registry.register_action(action)
    return registry


def test_normalize_action_name():
    assert normalize_action_name("SEND_MESSAGE") == "sendmessage"
    assert normalize_action_name("  Send_Message ") == "sendmessage"
    assert normalize_action_name(None) == ""


def test_resolve_ignores_case_and_underscores():
    send = Action(name="SEND_MESSAGE", description="send", validate=_always)
    registry = _registry(send)

    assert registry.resolve("send_message") is send
    assert registry.resolve("SendMessage") is send


def test_resolve_by_name_containment():
    follow = Action(name="FOLLOW_ROOM", description="follow", validate=_always)
    registry = _registry(follow)

    assert registry.resolve("FOLLOW") is follow
    assert registry.resolve("PLEASE_FOLLOW_ROOM_NOW") is follow


def test_resolve_by_simile():
    mute = Action(name="MUTE_ROOM", description="mute", validate=_always, similes=["SILENCE", "SHUT_UP"])
    registry = _registry(mute)

    assert registry.resolve("silence") is mute
    assert registry.resolve("SHUTUP_NOW") is mute


def test_name_match_wins_over_simile():
    reply = Action(name="REPLY", description="reply", validate=_always)
    other = Action(name="OTHER", description="other", validate=_always, similes=["REPLY"])
    registry = _registry(other, reply)

    assert registry.resolve("REPLY") is reply


def test_first_registered_wins():
    first = Action(name="CONTINUE", description="a", validate=_always)
    second = Action(name="CONTINUE", description="b", validate=_always)
    registry = _registry(first, second)

    assert registry.resolve("CONTINUE") is first
    assert len(registry) == 2
    assert registry.get_available_actions() == [first, second]


def test_no_match_returns_none():
    registry = _registry(Action(name="REPLY", description="reply", validate=_always))

    assert registry.resolve("TELEPORT") is None
    assert registry.resolve("") is None
    assert registry.resolve(None) is None


def test_available_actions_is_a_snapshot():
    reply = Action(name="REPLY", description="reply", validate=_always)
    registry = _registry(reply)

    available = registry.get_available_actions()
    available.append(Action(name="EXTRA", description="extra", validate=_always))

    assert registry.get_available_actions() == [reply]
    assert len(registry) == 1
