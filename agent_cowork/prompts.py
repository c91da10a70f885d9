"""System and user prompt rendering.

Templates ship in ``agent_cowork/templates``. A file of the same name in
``~/.agent-cowork/templates`` replaces the packaged one.
"""

from datetime import datetime
from importlib import resources
from pathlib import Path
import sys

SYSTEM_PROMPT_TEMPLATE = "system_prompt.md"
INITIAL_PROMPT_TEMPLATE = "initial_prompt.md"

_PERSONAL_DIR = Path("~/.agent-cowork/templates")


class _KeepUnknown(dict[str, str]):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


class PromptTemplates:
    """Packaged prompt templates with per-user overrides."""

    def __init__(self, personal_dir: Path | str | None = None):
        self.personal_dir = Path(personal_dir or _PERSONAL_DIR).expanduser()

    def load(self, name: str) -> str:
        personal = self.personal_dir / name
        if personal.is_file():
            return personal.read_text(encoding="utf-8").strip()
        packaged = resources.files("agent_cowork") / "templates" / name
        if not packaged.is_file():
            raise FileNotFoundError(f"Prompt template not found: {name}")
        return packaged.read_text(encoding="utf-8").strip()

    def render(self, name: str, **variables: object) -> str:
        """Fill ``{placeholders}``; unknown ones are left in place."""
        values = _KeepUnknown({key: str(value) for key, value in variables.items()})
        return self.load(name).format_map(values)


_default_templates: PromptTemplates | None = None


def _templates(templates: PromptTemplates | None) -> PromptTemplates:
    global _default_templates
    if templates is not None:
        return templates
    if _default_templates is None:
        _default_templates = PromptTemplates()
    return _default_templates


def os_name(platform: str) -> str:
    """Human readable OS name for a ``sys.platform`` value."""
    if platform.startswith("win"):
        return "Windows"
    if platform == "darwin":
        return "macOS"
    if platform.startswith("linux"):
        return "Linux"
    return "Unix"


def shell_commands(platform: str) -> dict[str, str]:
    """Shell command hints shown to the model for the host platform."""
    if platform.startswith("win"):
        return {
            "list_files_cmd": "dir",
            "view_file_cmd": "type",
            "change_dir_cmd": "cd",
            "current_dir_cmd": "cd",
            "find_files_cmd": "dir /s /b",
            "search_text_cmd": "findstr /s /i",
        }
    return {
        "list_files_cmd": "ls",
        "view_file_cmd": "cat",
        "change_dir_cmd": "cd",
        "current_dir_cmd": "pwd",
        "find_files_cmd": "find . -name",
        "search_text_cmd": "grep -r",
    }


def render_system_prompt(
    cwd: str,
    platform: str | None = None,
    templates: PromptTemplates | None = None,
) -> str:
    """Render the system prompt for a working directory and platform."""
    platform = platform or sys.platform
    return _templates(templates).render(
        SYSTEM_PROMPT_TEMPLATE,
        os_name=os_name(platform),
        platform=platform,
        shell="PowerShell" if platform.startswith("win") else "bash",
        cwd=cwd,
        **shell_commands(platform),
    )


def render_initial_prompt(
    task: str,
    memory: str | None = None,
    now: datetime | None = None,
    templates: PromptTemplates | None = None,
) -> str:
    """Render a new user prompt with a date stamp and optional memory section."""
    current_date = (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    memory_section = ""
    if memory and memory.strip():
        memory_section = f"MEMORY ABOUT USER:\n\n{memory.strip()}\n\n---\n"
    return _templates(templates).render(
        INITIAL_PROMPT_TEMPLATE,
        current_date=current_date,
        memory_section=memory_section,
        task=task,
    )
