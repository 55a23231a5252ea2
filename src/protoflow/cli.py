"""Interactive terminal front end for the workflow engine.

The CLI renders the current step, collects one intent at a time and calls
``maybe_generate()`` after every intent. It is the only place that writes
export files to disk.
"""

import argparse
import asyncio
import getpass
from pathlib import Path
from typing import Optional

from protoflow.errors import (
    EmptyFeedbackError,
    InputValidationError,
    StepLockedError,
    StorageUnavailableError,
)
from protoflow.integrations.llm_client import LiteLLMGateway
from protoflow.storage import InMemoryMedium, SessionStore
from protoflow.utils.config import Settings, get_settings
from protoflow.utils.logging_config import get_logger, setup_logging
from protoflow.workflow.engine import WorkflowEngine
from protoflow.workflow.export import build_step_download, build_workflow_export, get_download_filename
from protoflow.workflow.navigation import is_accessible, progress
from protoflow.workflow.state import Notification, NotificationType, WorkflowState
from protoflow.workflow.steps import (
    CODE_ARTIFACT_STEP_ID,
    ENTRY_STEP_ID,
    TERMINAL_STEP_ID,
    WORKFLOW_STEPS,
    get_step,
)

PREVIEW_LENGTH = 1500

_NOTIFICATION_ICONS = {
    NotificationType.ERROR: "❌",
    NotificationType.SUCCESS: "✅",
    NotificationType.WARNING: "⚠️ ",
    NotificationType.INFO: "ℹ️ ",
}


def _get_logger():
    """Get logger instance lazily to avoid import-time config loading."""
    return get_logger(__name__)


def build_store(settings: Optional[Settings] = None) -> SessionStore:
    """Create the session store for the configured backend.

    Falls back to an in-memory medium when the SQL backend cannot be opened
    or does not answer a health check.
    """
    settings = settings or get_settings()
    if settings.STORAGE_BACKEND == "sql":
        from protoflow.storage.database import SqlSessionMedium, health_check

        try:
            medium = SqlSessionMedium(settings.SESSION_ID)
        except StorageUnavailableError as e:
            _get_logger().warning("SQL session storage unavailable, using memory: %s", e)
        else:
            if health_check():
                return SessionStore(medium)
            _get_logger().warning("SQL session storage failed its health check, using memory")
    return SessionStore(InMemoryMedium())


# ----------------------------------------------------------------------
# Display helpers
# ----------------------------------------------------------------------
def display_notification(notification: Notification) -> None:
    """Print a notification emitted by the engine."""
    icon = _NOTIFICATION_ICONS.get(notification.type, "")
    print(f"\n{icon} {notification.message}")


def display_error(message: str) -> None:
    print("\n" + "=" * 70)
    print("❌ ERROR")
    print("=" * 70)
    print(f"\n{message}")
    print("\n" + "=" * 70)


def display_sidebar(state: WorkflowState) -> None:
    """Print the step list with lock and approval markers, plus progress.

    Example Output:
        📋 WORKFLOW (33% complete)
          ✔ User Stories
          ▶ Design Docs
          🔒 Code Generation
    """
    print("\n" + "=" * 70)
    print(f"📋 WORKFLOW ({progress(state):.0f}% complete)")
    print("=" * 70)
    for step in WORKFLOW_STEPS:
        if step.id == state.current_step_id:
            marker = "▶"
        elif state.is_approved(step.id):
            marker = "✔"
        elif not is_accessible(state, step.id):
            marker = "🔒"
        else:
            marker = " "
        print(f"  {marker} {step.label}  [{step.id}]")


def display_step(state: WorkflowState) -> None:
    """Print the current step's content, truncated to a preview."""
    step = get_step(state.current_step_id)
    content = state.content_by_step.get(step.id, "")

    print("\n" + "=" * 70)
    status = " (approved)" if state.is_approved(step.id) else ""
    print(f"📄 {step.label.upper()}{status}")
    print("=" * 70)

    if not content:
        if state.in_flight:
            print("\n⏳ Generating content...")
        else:
            print("\n(No content yet. Choose 'r' to retry generation.)")
        return

    preview = content[:PREVIEW_LENGTH]
    print(preview + ("..." if len(content) > PREVIEW_LENGTH else ""))
    if len(content) > PREVIEW_LENGTH:
        print(f"\n(Showing first {PREVIEW_LENGTH} characters of {len(content)} total)")


def display_completion(state: WorkflowState) -> None:
    print("\n" + "=" * 70)
    print("🎉 PROJECT COMPLETE")
    print("=" * 70)
    print(f"\nProject: {state.project_prompt}")
    print(f"Approved steps: {progress(state):.0f}%")


# ----------------------------------------------------------------------
# Input helpers
# ----------------------------------------------------------------------
def prompt_entry() -> tuple[str, str]:
    """Ask for the API key and project description."""
    print("\n" + "=" * 70)
    print("🚀 GETTING STARTED")
    print("=" * 70)
    credential = getpass.getpass("\n🔑 API key: ").strip()
    project_prompt = input("📝 Describe your project: ").strip()
    return credential, project_prompt


def prompt_action(state: WorkflowState) -> str:
    """Show the actions available for the current screen and return the choice."""
    step_id = state.current_step_id
    options = []
    if step_id != TERMINAL_STEP_ID and state.has_content(step_id):
        options += [("a", "Approve"), ("f", "Give feedback")]
        if get_step(step_id).is_code_artifact:
            options.append(("e", "Edit code from a file"))
        options.append(("d", "Download this step"))
    elif step_id != TERMINAL_STEP_ID:
        options.append(("r", "Retry generation"))
    options += [("w", "Download the whole workflow"), ("g", "Go to step"), ("n", "New project"), ("q", "Quit")]

    print("\nOptions:")
    for key, label in options:
        print(f"  {key}. {label}")

    valid = {key for key, _ in options}
    while True:
        choice = input("\n👉 Enter your choice: ").strip().lower()
        if choice in valid:
            return choice
        print(f"❌ Please enter one of: {', '.join(sorted(valid))}")


def _write_export(output_dir: Path, filename: str, content: str) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / filename
    path.write_text(content, encoding="utf-8")
    return path


# ----------------------------------------------------------------------
# Main loop
# ----------------------------------------------------------------------
async def handle_action(engine: WorkflowEngine, choice: str, output_dir: Path) -> bool:
    """Apply one menu choice to the engine. Returns False when the user quits."""
    state = engine.state
    step_id = state.current_step_id

    if choice == "q":
        return False
    if choice == "a":
        engine.approve(step_id)
    elif choice == "f":
        feedback = input("\n👉 Feedback: ").strip()
        engine.submit_feedback(step_id, feedback)
    elif choice == "e":
        source = Path(input("\n👉 Path to the edited HTML file: ").strip())
        engine.update_step_content(CODE_ARTIFACT_STEP_ID, source.read_text(encoding="utf-8"))
        print("\n✅ Code updated")
    elif choice == "d":
        download = build_step_download(state, step_id)
        if download is not None:
            path = _write_export(output_dir, download.filename, download.content)
            print(f"\n💾 Saved {path}")
    elif choice == "w":
        export = build_workflow_export(state)
        filename = get_download_filename("sdlc_workflow", state.project_prompt) + ".json"
        path = _write_export(output_dir, filename, export.to_json())
        print(f"\n💾 Saved {path}")
    elif choice == "g":
        target = input("\n👉 Step id: ").strip()
        engine.navigate(target)
    elif choice == "n":
        confirm = input("\n⚠️  Discard this project? (yes/no): ").strip().lower()
        if confirm in ("yes", "y"):
            engine.reset()
    return True


async def run(engine: WorkflowEngine, output_dir: Path) -> None:
    """Drive the engine until the user quits."""
    engine.subscribe(display_notification)

    while True:
        if await engine.maybe_generate():
            _get_logger().debug("Generation pass finished for %s", engine.current_step_id)

        state = engine.state
        if state.current_step_id == ENTRY_STEP_ID:
            credential, project_prompt = prompt_entry()
            try:
                engine.start(credential, project_prompt)
            except InputValidationError as e:
                display_error(e.message)
            continue

        display_sidebar(state)
        if state.current_step_id == TERMINAL_STEP_ID:
            display_completion(state)
        else:
            display_step(state)

        choice = prompt_action(state)
        try:
            if not await handle_action(engine, choice, output_dir):
                return
        except StepLockedError as e:
            display_notification(Notification(message=e.message, type=NotificationType.WARNING))
        except EmptyFeedbackError as e:
            display_error(e.message)
        except (OSError, UnicodeDecodeError) as e:
            display_error(f"File error: {e}")


def main(argv: Optional[list[str]] = None) -> int:
    """Console entry point."""
    parser = argparse.ArgumentParser(prog="protoflow", description="Guided SDLC generation workflow")
    parser.add_argument("--output-dir", type=Path, default=Path("."), help="where downloads are written")
    parser.add_argument("--json-logs", action="store_true", help="emit logs as JSON")
    args = parser.parse_args(argv)

    setup_logging(use_json=args.json_logs)
    engine = WorkflowEngine(LiteLLMGateway(), build_store())

    try:
        asyncio.run(run(engine, args.output_dir))
    except (KeyboardInterrupt, EOFError):
        print("\n\n⚠️  Session interrupted")
        return 130
    print("\n👋 Goodbye!")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
