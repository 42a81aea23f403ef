"""Seed database with standard HSE topics and a sample project.

Usage: python -m jobcards.seed
"""

import asyncio
import json
from pathlib import Path

from sqlalchemy import select

from jobcards.db.session import async_session_factory, init_db
from jobcards.models.db import (
    HseQuestion,
    HseTopic,
    JobcardTask,
    Project,
    ProjectItem,
    TaskHseTopic,
    WbsNode,
)
from jobcards.planning import wbs
from jobcards.planning.jobcards import make_qr_slug, normalize_status


SEED_DIR = Path(__file__).parent.parent.parent / "seed"


def _load(name: str):
    json_path = SEED_DIR / name
    if not json_path.exists():
        print(f"  Seed file not found: {json_path}")
        return None
    with open(json_path) as f:
        return json.load(f)


async def seed_hse_topics() -> int:
    """Load standard HSE topics and their questions from seed/hse_topics.json."""
    topics_data = _load("hse_topics.json")
    if topics_data is None:
        return 0

    async with async_session_factory() as session:
        result = await session.execute(select(HseTopic.code))
        existing = set(result.scalars().all())

        count = 0
        for entry in topics_data:
            if entry["code"] in existing:
                continue
            topic = HseTopic(
                code=entry["code"],
                name=entry["name"],
                description=entry.get("description"),
                regulatory_ref=entry.get("regulatory_ref"),
            )
            session.add(topic)
            await session.flush()

            for i, q in enumerate(entry.get("questions", []), start=1):
                session.add(
                    HseQuestion(
                        topic_id=topic.id,
                        question_text=q["question_text"],
                        response_type=q.get("response_type", "yes_no"),
                        required=q.get("required", True),
                        sort_order=i * 10,
                    )
                )
            count += 1

        await session.commit()
        return count


async def _add_wbs_level(session, item: ProjectItem, entry: dict, parent_id, created: list, topics: dict):
    """Create one WBS node, its jobcards and, recursively, its children."""
    node = WbsNode(
        projectnumber=item.projectnumber,
        item_seq=item.item_seq,
        parent_id=parent_id,
        code=wbs.next_child_code(created, parent_id),
        name=entry["name"],
        description=entry.get("description"),
        sort_order=wbs.next_sort_order(created, parent_id),
    )
    session.add(node)
    await session.flush()
    created.append(node)

    for card in entry.get("jobcards", []):
        task = JobcardTask(
            projectnumber=item.projectnumber,
            item_seq=item.item_seq,
            wbs_node_id=node.id,
            title=card["title"],
            description=card.get("description"),
            status=normalize_status(card.get("status")),
            qr_slug=make_qr_slug(item.projectnumber, item.item_seq, node.code),
        )
        session.add(task)
        await session.flush()
        for code in card.get("topics", []):
            if code in topics:
                session.add(TaskHseTopic(task_id=task.id, topic_id=topics[code]))

    for child in entry.get("children", []):
        await _add_wbs_level(session, item, child, node.id, created, topics)


async def seed_sample_project() -> str | None:
    """Create the sample project with its items, WBS and jobcards."""
    data = _load("sample_project.json")
    if data is None:
        return None

    async with async_session_factory() as session:
        # Check if already seeded
        if await session.get(Project, data["projectnumber"]):
            print("  Sample project already exists, skipping.")
            return None

        result = await session.execute(select(HseTopic.code, HseTopic.id))
        topics = dict(result.all())

        project = Project(projectnumber=data["projectnumber"], description=data.get("description"))
        session.add(project)
        await session.flush()

        for item_data in data.get("items", []):
            item = ProjectItem(
                projectnumber=project.projectnumber,
                item_seq=item_data["item_seq"],
                line_desc=item_data.get("line_desc", ""),
            )
            session.add(item)
            await session.flush()

            created: list[WbsNode] = []
            for entry in item_data.get("wbs", []):
                await _add_wbs_level(session, item, entry, None, created, topics)
            print(
                f"  Item {wbs.base_code(item.projectnumber, item.item_seq)}: "
                f"{len(created)} WBS levels"
            )

        await session.commit()
        print(f"  Created project: {project.projectnumber} ({project.description})")
        return project.projectnumber


async def main():
    """Run all seed operations."""
    print("Initializing database connection...")
    await init_db()

    print("Seeding HSE topics...")
    count = await seed_hse_topics()
    print(f"  Loaded {count} HSE topics.")

    print("Seeding sample project...")
    projectnumber = await seed_sample_project()
    if projectnumber:
        print("  Grant yourself access with:")
        print(f"    jobcards set-role --email you@example.com --project {projectnumber} --role admin")

    print("Done! Seed data loaded successfully.")


if __name__ == "__main__":
    asyncio.run(main())
