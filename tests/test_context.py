"""Tests for bounded context assembly."""

from datetime import date

from atr.ai.context import ContextAssembler, ContextBudget
from atr.llm.prompt import EXTRACTION_PROMPT
from atr.store import ConversationStore, TaskFields


async def _seed_tasks(store: ConversationStore, count: int, title_len: int = 20) -> None:
    async with store.transaction() as tx:
        for i in range(count):
            await tx.create_task(TaskFields(title=f"{i:04d}" + "t" * title_len))


async def test_segments_order_and_roles(store: ConversationStore) -> None:
    conv = await store.create_conversation()
    await store.add_message(conv.id, "user", "hello")

    segments = await ContextAssembler(store, ContextBudget()).assemble(conv)

    assert [s["role"] for s in segments] == ["system", "system"]
    assert segments[0]["content"] == EXTRACTION_PROMPT
    context = segments[1]["content"]
    assert context.startswith("CONTEXT:\n")
    positions = [
        context.index(label) for label in ("TASKS_SNAPSHOT:", "SEMANTIC_RECALL:", "RECENT:")
    ]
    assert positions == sorted(positions)
    assert context.endswith("RECENT:\nUSER: hello")


async def test_summary_comes_first(store: ConversationStore) -> None:
    conv = await store.create_conversation()
    conv.running_summary = "USER: earlier stuff"

    payload = await ContextAssembler(store, ContextBudget()).build_payload(conv)
    assert payload.startswith("USER: earlier stuff\n\nTASKS_SNAPSHOT:")


async def test_empty_summary_is_trimmed(store: ConversationStore) -> None:
    conv = await store.create_conversation()
    payload = await ContextAssembler(store, ContextBudget()).build_payload(conv)
    assert payload.startswith("TASKS_SNAPSHOT:")
    assert "SEMANTIC_RECALL:\n\n" in payload


async def test_recent_tail_within_budget_keeps_newest(store: ConversationStore) -> None:
    conv = await store.create_conversation()
    for i in range(30):
        await store.add_message(conv.id, "user", f"message {i:02d} " + "x" * 300)

    tail = await ContextAssembler(store, ContextBudget()).recent_tail(conv)

    assert len(tail) <= 6000
    assert tail.endswith("\n")
    lines = tail.splitlines()
    assert all(line.startswith("USER: message ") for line in lines)
    assert lines[-1].startswith("USER: message 29")
    # Oldest messages are the ones dropped
    assert "message 00" not in tail
    numbers = [int(line.split()[2]) for line in lines]
    assert numbers == sorted(numbers)
    assert numbers == list(range(numbers[0], 30))


async def test_recent_tail_respects_message_limit(store: ConversationStore) -> None:
    conv = await store.create_conversation()
    for i in range(35):
        await store.add_message(conv.id, "assistant", f"m{i}")

    tail = await ContextAssembler(store, ContextBudget()).recent_tail(conv)

    lines = tail.splitlines()
    assert len(lines) == 30
    assert lines[0] == "ASSISTANT: m5"


async def test_recent_tail_trims_content(store: ConversationStore) -> None:
    conv = await store.create_conversation()
    await store.add_message(conv.id, "user", "   padded   \n")

    tail = await ContextAssembler(store, ContextBudget()).recent_tail(conv)
    assert tail == "USER: padded\n"


async def test_task_snapshot_format(store: ConversationStore) -> None:
    async with store.transaction() as tx:
        await tx.create_task(
            TaskFields(title="Buy milk", priority="low", due_date=date(2024, 1, 2))
        )
        await tx.create_task(TaskFields(title="Call bank", duration_minutes=15))

    snapshot = await ContextAssembler(store, ContextBudget()).task_snapshot()

    assert snapshot.splitlines() == [
        "#2 [New/medium] Call bank (due:-, 15min)",
        "#1 [New/low] Buy milk (due:2024-01-02, 30min)",
    ]


async def test_task_snapshot_cut_at_line_boundary(store: ConversationStore) -> None:
    await _seed_tasks(store, 200)

    snapshot = await ContextAssembler(store, ContextBudget()).task_snapshot()

    assert len(snapshot) <= 4000
    for line in snapshot.splitlines():
        assert line.endswith("min)")


async def test_task_snapshot_limited_to_task_count(store: ConversationStore) -> None:
    await _seed_tasks(store, 5, title_len=1)

    limits = ContextBudget(snapshot_tasks=3)
    snapshot = await ContextAssembler(store, limits).task_snapshot()
    assert len(snapshot.splitlines()) == 3


async def test_payload_never_exceeds_total_budget(store: ConversationStore) -> None:
    conv = await store.create_conversation()
    conv.running_summary = "s" * 6000
    await _seed_tasks(store, 200)
    for i in range(30):
        await store.add_message(conv.id, "user", "y" * 250)

    payload = await ContextAssembler(store, ContextBudget()).build_payload(conv)

    assert len(payload) == 12000
    # The summary and snapshot survive; the recent tail is what gets clipped
    assert payload.startswith("s" * 6000)
    assert "TASKS_SNAPSHOT:" in payload


async def test_small_budgets_from_constructor(store: ConversationStore) -> None:
    conv = await store.create_conversation()
    for i in range(10):
        await store.add_message(conv.id, "user", f"line {i}")

    limits = ContextBudget(total=50, recent_tail=30)
    assembler = ContextAssembler(store, limits)

    assert len(await assembler.recent_tail(conv)) <= 30
    assert len(await assembler.build_payload(conv)) <= 50
