"""Command line tool for Stitch Log."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from stitchlog.database import AsyncSessionLocal, init_db
from stitchlog.errors import StitchLogError
from stitchlog.models import NeedleType
from stitchlog.schemas import NeedleInventoryInput, parse_command
from stitchlog.services import inventory as inventory_service
from stitchlog.services import projects as project_service
from stitchlog.services.presentation import serialize_project
from stitchlog.services.status import get_workflow
from stitchlog.services.tags import list_all_tags
from stitchlog.utils.files import get_blob_store


async def list_projects(status: str | None = None, tag: str | None = None) -> None:
    """Print one line per project, newest first."""
    await init_db()
    async with AsyncSessionLocal() as session:
        projects = await project_service.list_projects(session, status=status, tag=tag)
        for project in projects:
            line = f"ID: {project.id}, Name: {project.name}, Status: {project.status}"
            if project.tags:
                line += ", Tags: " + ", ".join(t.name for t in project.tags)
            print(line)


async def show_project(project_id: int) -> None:
    """Print a project aggregate as JSON."""
    await init_db()
    async with AsyncSessionLocal() as session:
        project = await project_service.require_project(session, project_id)
        print(json.dumps(serialize_project(project), indent=2))


async def delete_project(project_id: int) -> None:
    await init_db()
    async with AsyncSessionLocal() as session:
        await project_service.delete_project(session, project_id, get_blob_store())
        print(f"Deleted project {project_id}")


async def set_status(project_id: int, status: str) -> None:
    await init_db()
    async with AsyncSessionLocal() as session:
        project = await project_service.change_status(session, project_id, status)
        print(f"Project {project.id} is now {project.status}")


async def list_tags() -> None:
    await init_db()
    async with AsyncSessionLocal() as session:
        for tag in await list_all_tags(session):
            print(tag.name)


async def list_needles() -> None:
    await init_db()
    async with AsyncSessionLocal() as session:
        for needle in await inventory_service.list_inventory(session):
            length = f" {needle.length}" if needle.length else ""
            print(f"ID: {needle.id}, {needle.type} {needle.size}{length}")


async def add_needle(size: str, needle_type: str, length: str | None) -> None:
    await init_db()
    async with AsyncSessionLocal() as session:
        command = parse_command(
            NeedleInventoryInput,
            {"size": size, "type": needle_type, "length": length},
            operation="create",
            entity="needle_inventory",
        )
        needle = await inventory_service.add_inventory_needle(session, command)
        print(f"Added needle {needle.id}")


async def copy_needles(project_id: int, needle_ids: list[int]) -> None:
    await init_db()
    async with AsyncSessionLocal() as session:
        project = await inventory_service.copy_inventory_to_project(
            session, project_id, needle_ids
        )
        print(f"Project {project.id} now has {len(project.needles)} needles")


def list_statuses() -> None:
    for option in get_workflow().options:
        print(f"{option.key}\t{option.label}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Stitch Log CLI tool.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Projects
    project_parser = subparsers.add_parser("projects", help="Manage projects")
    project_subparsers = project_parser.add_subparsers(
        dest="project_command", required=True
    )

    list_parser = project_subparsers.add_parser("list", help="List projects")
    list_parser.add_argument("--status", help="Only projects in this status")
    list_parser.add_argument("--tag", help="Only projects with this tag")

    show_parser = project_subparsers.add_parser("show", help="Show one project")
    show_parser.add_argument("project_id", type=int)

    delete_parser = project_subparsers.add_parser("delete", help="Delete a project")
    delete_parser.add_argument("project_id", type=int)

    status_parser = project_subparsers.add_parser(
        "status", help="Move a project to another status"
    )
    status_parser.add_argument("project_id", type=int)
    status_parser.add_argument("status")

    # Tags
    tag_parser = subparsers.add_parser("tags", help="Inspect tags")
    tag_subparsers = tag_parser.add_subparsers(dest="tag_command", required=True)
    tag_subparsers.add_parser("list", help="List all tags")

    # Needle inventory
    needle_parser = subparsers.add_parser("needles", help="Manage needle inventory")
    needle_subparsers = needle_parser.add_subparsers(
        dest="needle_command", required=True
    )
    needle_subparsers.add_parser("list", help="List inventory needles")
    add_parser = needle_subparsers.add_parser("add", help="Add a needle")
    add_parser.add_argument("--size", required=True, help="Needle size, e.g. 4.0mm")
    add_parser.add_argument(
        "--type",
        required=True,
        choices=[needle_type.value for needle_type in NeedleType],
        help="Needle type",
    )
    add_parser.add_argument("--length", help="Cable length")
    copy_parser = needle_subparsers.add_parser(
        "copy", help="Copy inventory needles into a project"
    )
    copy_parser.add_argument("project_id", type=int)
    copy_parser.add_argument("needle_ids", type=int, nargs="+", metavar="needle_id")

    subparsers.add_parser("statuses", help="List configured statuses")

    args = parser.parse_args()

    try:
        if args.command == "projects":
            if args.project_command == "list":
                asyncio.run(list_projects(args.status, args.tag))
            elif args.project_command == "show":
                asyncio.run(show_project(args.project_id))
            elif args.project_command == "delete":
                asyncio.run(delete_project(args.project_id))
            elif args.project_command == "status":
                asyncio.run(set_status(args.project_id, args.status))
        elif args.command == "tags":
            asyncio.run(list_tags())
        elif args.command == "needles":
            if args.needle_command == "list":
                asyncio.run(list_needles())
            elif args.needle_command == "add":
                asyncio.run(add_needle(args.size, args.type, args.length))
            elif args.needle_command == "copy":
                asyncio.run(copy_needles(args.project_id, args.needle_ids))
        elif args.command == "statuses":
            list_statuses()
    except StitchLogError as exc:
        print(f"Error: {exc.detail}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
