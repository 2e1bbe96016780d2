"""
Teamwork CLI — Team collaboration from the terminal.

Commands:
- teamwork init                    — Create storage + empty collections
- teamwork member add|list         — Manage the team roster
- teamwork task add|start|complete|delete|list
- teamwork doc upload|list|delete|export
- teamwork stats                   — Contribution table
- teamwork quote                   — Motivational quote of the day
- teamwork activity                — Recent entries from the activity log
- teamwork reset                   — Delete ALL data (confirmation required)

Interactive prompts (assignee / uploader pick, delete confirmation) can be
answered up front with --assignee, --uploader and --yes.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Optional

from teamwork.engine.config import TeamworkConfig, load_config
from teamwork.engine.errors import TeamworkConfigError, TeamworkError
from teamwork.engine.logging import OBJECT_TYPE_CATEGORIES, FileLogger
from teamwork.prompts import (
    NO_MEMBERS_WARNING,
    AutoConfirm,
    ConsoleConfirm,
    ConsoleSelector,
    FixedSelector,
)
from teamwork.records.models import TaskPriority
from teamwork.services.documents import FileUpload, format_size
from teamwork.services.tasks import ALL, PENDING

logger = logging.getLogger("teamwork.cli")

STATUS_CHOICES = [ALL, PENDING, "todo", "in-progress", "completed"]
PRIORITY_CHOICES = [p.value for p in TaskPriority]


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="teamwork",
        description="Teamwork: team task, document, and contribution tracker",
    )
    parser.add_argument("--config", help="Path to teamwork.yaml (default: auto-discover)")
    parser.add_argument("--yes", "-y", action="store_true", help="Answer yes to confirmations")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging to stderr")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # teamwork init
    subparsers.add_parser("init", help="Create storage and empty collections")

    # teamwork member ...
    member_parser = subparsers.add_parser("member", help="Manage team members")
    member_sub = member_parser.add_subparsers(dest="action")
    member_add = member_sub.add_parser("add", help="Add a team member")
    member_add.add_argument("name", help="Member name (must be unique)")
    member_add.add_argument("--role", default="", help="Role in the team")
    member_sub.add_parser("list", help="List team members")

    # teamwork task ...
    task_parser = subparsers.add_parser("task", help="Manage tasks")
    task_sub = task_parser.add_subparsers(dest="action")
    task_add = task_sub.add_parser("add", help="Create a task")
    task_add.add_argument("title", help="Task title")
    task_add.add_argument("--description", default="", help="Longer description")
    task_add.add_argument("--due", help="Due date (YYYY-MM-DD)")
    task_add.add_argument("--priority", choices=PRIORITY_CHOICES, default="medium")
    task_add.add_argument("--assignee", help="Member name (prompted if omitted)")
    for action in ("start", "complete", "delete"):
        action_parser = task_sub.add_parser(action, help=f"{action.capitalize()} a task")
        action_parser.add_argument("task_id", help="Task id")
    task_list = task_sub.add_parser("list", help="Show the task board")
    task_list.add_argument("--search", default="", help="Match title or description")
    task_list.add_argument("--status", choices=STATUS_CHOICES, default=ALL)
    task_list.add_argument("--priority", choices=[ALL, *PRIORITY_CHOICES], default=ALL)
    task_list.add_argument("--assignee", default=ALL, help="Member name or 'all'")

    # teamwork doc ...
    doc_parser = subparsers.add_parser("doc", help="Manage shared documents")
    doc_sub = doc_parser.add_subparsers(dest="action")
    doc_upload = doc_sub.add_parser("upload", help="Upload one or more files")
    doc_upload.add_argument("files", nargs="+", help="Files to upload")
    doc_upload.add_argument("--uploader", help="Member name (prompted if omitted)")
    doc_list = doc_sub.add_parser("list", help="List documents, newest first")
    doc_list.add_argument("--search", default="", help="Match title")
    doc_delete = doc_sub.add_parser("delete", help="Delete a document")
    doc_delete.add_argument("doc_id", help="Document id")
    doc_export = doc_sub.add_parser("export", help="Save a document to disk")
    doc_export.add_argument("doc_id", help="Document id")
    doc_export.add_argument("destination", nargs="?", default=".", help="File or directory (default: .)")

    # teamwork stats / quote / activity / reset
    subparsers.add_parser("stats", help="Show member contributions")
    subparsers.add_parser("quote", help="Show a motivational quote")
    activity_parser = subparsers.add_parser("activity", help="Show recent activity log entries")
    activity_parser.add_argument(
        "--type", dest="object_type", choices=sorted(OBJECT_TYPE_CATEGORIES), default="tasks",
    )
    activity_parser.add_argument("--limit", type=int, default=20)
    subparsers.add_parser("reset", help="Delete ALL tasks, documents, and members")

    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    handlers = {
        "init": cmd_init,
        "member": cmd_member,
        "task": cmd_task,
        "doc": cmd_doc,
        "stats": cmd_stats,
        "quote": cmd_quote,
        "activity": cmd_activity,
        "reset": cmd_reset,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        return 0

    try:
        return handler(args)
    except TeamworkConfigError as e:
        print(f"[ERROR] {e.message}")
        for err in e.context.get("validation_errors", []):
            print(f"  {'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}")
        return 1
    except TeamworkError as e:
        logger.debug(e.to_json())
        print(f"[ERROR] {e.message}")
        return 1


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load(args: argparse.Namespace) -> TeamworkConfig:
    return load_config(getattr(args, "config", None))


def _open_app(args: argparse.Namespace, pick: Optional[str] = None):
    """Build and start the app with prompts matching the given flags."""
    from teamwork.app import TeamworkApp

    config = _load(args)
    selector = FixedSelector(pick) if pick is not None else ConsoleSelector()
    confirmer = AutoConfirm() if getattr(args, "yes", False) else ConsoleConfirm()
    return TeamworkApp.from_config(config, selector=selector, confirmer=confirmer).start()


def _print_task(task) -> None:
    due = f" due {task.due_date.isoformat()}" if task.due_date else ""
    print(
        f"  [{task.status.value}] {task.title} ({task.priority.value}) "
        f"→ {task.assigned_to}{due}  id={task.id}"
    )
    if task.description:
        print(f"      {task.description}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_init(args: argparse.Namespace) -> int:
    config = _load(args)
    print("=" * 50)
    print(f"  {config.team_name}")
    print("=" * 50)
    app = _open_app(args)
    try:
        print(f"[OK] Storage ready: {config.storage.url}")
        print(f"[OK] Collections: {', '.join(sorted(app.storage.keys()))}")
        if config.logging.activity_log:
            print(f"[OK] Activity log: {config.logging.directory}")
    finally:
        app.close()
    return 0


def cmd_member(args: argparse.Namespace) -> int:
    app = _open_app(args)
    try:
        if args.action == "add":
            member = app.members.create(args.name, args.role)
            print(f"[OK] Added member '{member.name}'")
            return 0
        if args.action == "list":
            members = app.members.list()
            if not members:
                print(f"[WARN] {NO_MEMBERS_WARNING}")
                return 0
            for member in members:
                role = f" ({member.role})" if member.role else ""
                print(f"  {member.name}{role}")
            return 0
        print("Usage: teamwork member {add,list}")
        return 1
    finally:
        app.close()


def cmd_task(args: argparse.Namespace) -> int:
    app = _open_app(args, pick=getattr(args, "assignee", None) if args.action == "add" else None)
    try:
        if args.action == "add":
            fields = {
                "title": args.title,
                "description": args.description,
                "due_date": args.due,
                "priority": args.priority,
            }
            task = app.tasks.create(fields)
            if task is None:
                print("[WARN] No assignee chosen, task not created")
                return 1
            print(f"[OK] Created task '{task.title}' for {task.assigned_to} (id={task.id})")
            return 0

        if args.action in ("start", "complete"):
            fn = app.tasks.start if args.action == "start" else app.tasks.complete
            task = fn(args.task_id)
            if task is None:
                print(f"[WARN] No task with id '{args.task_id}'")
                return 1
            print(f"[OK] '{task.title}' is now {task.status.value}")
            return 0

        if args.action == "delete":
            if not app.tasks.remove(args.task_id):
                print("[WARN] Task not deleted")
                return 1
            print(f"[OK] Deleted task {args.task_id}")
            return 0

        if args.action == "list":
            board = app.dashboard.set_task_filter(
                search=args.search,
                status=args.status,
                priority=args.priority,
                assignee=args.assignee,
            )
            print(f"Active ({len(board.active)})")
            for task in board.active:
                _print_task(task)
            print(f"Completed ({len(board.completed)})")
            for task in board.completed:
                _print_task(task)
            return 0

        print("Usage: teamwork task {add,start,complete,delete,list}")
        return 1
    finally:
        app.close()


def cmd_doc(args: argparse.Namespace) -> int:
    app = _open_app(args, pick=getattr(args, "uploader", None) if args.action == "upload" else None)
    try:
        if args.action == "upload":
            uploads = []
            for name in args.files:
                path = Path(name)
                if not path.is_file():
                    print(f"[ERROR] Not a file: {name}")
                    return 1
                uploads.append(FileUpload.from_path(path))
            report = asyncio.run(app.documents.upload_batch(uploads))
            if report.cancelled:
                print("[WARN] No uploader chosen, upload cancelled")
                return 1
            for doc in report.uploaded:
                print(f"[OK] Uploaded {doc.file_name} ({format_size(doc.size)}) id={doc.id}")
            for failure in report.failed:
                print(f"[ERROR] {failure.message}")
            return 0 if report.ok else 1

        if args.action == "list":
            docs = app.dashboard.set_document_search(args.search)
            if not docs:
                print("No documents.")
            for doc in docs:
                print(
                    f"  {doc.title}  {format_size(doc.size)}  by {doc.uploaded_by}  "
                    f"{doc.created_at:%Y-%m-%d}  id={doc.id}"
                )
            return 0

        if args.action == "delete":
            if not app.documents.remove(args.doc_id):
                print("[WARN] Document not deleted")
                return 1
            print(f"[OK] Deleted document {args.doc_id}")
            return 0

        if args.action == "export":
            target = app.documents.export(args.doc_id, args.destination)
            print(f"[OK] Saved {target}")
            return 0

        print("Usage: teamwork doc {upload,list,delete,export}")
        return 1
    finally:
        app.close()


def cmd_stats(args: argparse.Namespace) -> int:
    app = _open_app(args)
    try:
        report = app.contributions.compute()
        if not report.rows:
            print(f"[WARN] {NO_MEMBERS_WARNING}")
            return 0
        print(f"{'Member':<20} {'Docs':>5} {'Done':>5} {'Share':>6}")
        for row in report.rows:
            print(f"{row.name:<20} {row.doc_count:>5} {row.completed_task_count:>5} {row.percentage:>5}%")
        print(f"Total: {report.total_documents} documents, {report.total_completed_tasks} completed tasks")
        return 0
    finally:
        app.close()


def cmd_quote(args: argparse.Namespace) -> int:
    app = _open_app(args)

    async def _fetch():
        try:
            return await app.quotes.get_quote()
        finally:
            await app.quotes.aclose()

    try:
        print(str(asyncio.run(_fetch())))
        return 0
    finally:
        app.close()


def cmd_activity(args: argparse.Namespace) -> int:
    config = _load(args)
    entries = FileLogger(log_dir=config.logging.directory).query(
        args.object_type, limit=args.limit,
    )
    if not entries:
        print(f"No {args.object_type} activity in the last 7 days.")
        return 0
    for entry in entries:
        ref = entry.get("record_id") or entry.get("object_ref", "")
        print(f"  {entry.get('timestamp', '')}  {entry.get('event', '')}  {ref}")
    return 0


def cmd_reset(args: argparse.Namespace) -> int:
    app = _open_app(args)
    try:
        if not app.reset():
            print("[INFO] Reset cancelled")
            return 1
        print("[OK] All data deleted")
        return 0
    finally:
        app.close()
