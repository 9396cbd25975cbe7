#!/usr/bin/env python3
# examples/mira_demo.py
"""
MIRA demo: two weeks of a conversation in a few seconds

Walks one conversation through tool activation, segment consolidation,
decay and a forced sleep cycle, using a ManualClock to move time.

Run with: python mira_demo.py [database_url]
"""

import asyncio
import logging
import sys

from dotenv import load_dotenv

from mira_memory import EventProcessorConfig, ManualClock, Mira, MemoryType

load_dotenv()
logging.basicConfig(level=logging.WARNING)

OWNER = "demo-user"


async def main(database_url: str | None = None):
    print("🧠 MIRA memory demo")
    print("=" * 40)

    clock = ManualClock()
    event_config = EventProcessorConfig(run_initial_checks=False)
    if database_url:
        mira = await Mira.from_url(database_url, clock=clock, event_config=event_config)
    else:
        mira = Mira(clock=clock, event_config=event_config)

    await mira.start()
    try:
        # Day 0: a short coffee conversation
        turn = await mira.process_user_message(OWNER, "Any good latte near the office? Check the menu please")
        print(f"🔧 Activated tools: {[t.name for t in turn.activated] or 'none'}")
        await mira.process_assistant_response(OWNER, "Philz on 24th has oat lattes", tools_used=["mino_browser"])

        turn = await mira.process_user_message(OWNER, "Will it rain on the way there?")
        print(f"🔧 Activated tools: {[t.name for t in turn.activated]}")

        await mira.remember(OWNER, "Prefers oat milk", tags=["coffee"])
        await mira.remember(OWNER, "Walks to work on Tuesdays", memory_type=MemoryType.PROCEDURAL)

        print("\n📋 Context for the next reply:")
        print(await mira.get_formatted_context(OWNER, "latte"))

        # Three hours later the segment is idle and gets consolidated
        clock.advance(hours=3)
        cycle = await mira.events.force_sleep_cycle()
        print(f"😴 Sleep cycle: {cycle.segment_collapse.details}; {cycle.memory_decay.details}")

        # Two weeks on, episodic memories have faded
        clock.advance(days=14)
        for memory in await mira.recall(OWNER, "oat"):
            print(f"  [{memory.memory_type.value}] strength {memory.strength:.2f}: {memory.content}")

        status = await mira.get_status(OWNER)
        print(f"\n📊 {status.memory.total} memories, avg strength {status.memory.avg_strength:.2f}")
    finally:
        await mira.close()

    print("\n✅ Done")


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None))
