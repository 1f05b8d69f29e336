"""
Document Templates

``{{KEY}}`` placeholder substitution and the on-disk template library.
"""

from dataclasses import dataclass
from importlib import resources
from pathlib import Path
import logging
import re

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Z0-9_]+)\s*\}\}")
TRANSCRIPT_KEY = "TRANSCRIPT"
DEFAULT_TEMPLATE_NAME = "default_template"


def render(template_text: str, transcript: str | None, context: dict[str, str] | None = None) -> str:
    """Replace every ``{{KEY}}`` token in one left-to-right pass.

    ``TRANSCRIPT`` always resolves to ``transcript``; keys missing from
    ``context`` resolve to an empty string. Inserted values are not scanned
    again, and text outside tokens is left untouched.
    """
    replacements = {k: "" if v is None else str(v) for k, v in (context or {}).items()}
    replacements[TRANSCRIPT_KEY] = transcript or ""

    return PLACEHOLDER_PATTERN.sub(lambda m: replacements.get(m.group(1), ""), template_text)


def placeholders(template_text: str) -> list[str]:
    """Distinct placeholder keys in order of first appearance."""
    seen: dict[str, None] = {}
    for match in PLACEHOLDER_PATTERN.finditer(template_text):
        seen.setdefault(match.group(1), None)
    return list(seen)


@dataclass(frozen=True)
class Template:
    """A named document skeleton."""

    name: str
    raw_text: str

    @property
    def placeholders(self) -> list[str]:
        return placeholders(self.raw_text)

    def render(self, transcript: str | None, context: dict[str, str] | None = None) -> str:
        return render(self.raw_text, transcript, context)

    @classmethod
    def from_file(cls, filepath: str | Path) -> "Template":
        """Load a UTF-8 template; the name is the file stem."""
        path = Path(filepath)
        return cls(name=path.stem, raw_text=path.read_text(encoding="utf-8"))


class TemplateLibrary:
    """Templates stored as ``*.txt`` files in one directory."""

    def __init__(self, templates_dir: str | Path):
        self.templates_dir = Path(templates_dir)
        self._templates: dict[str, Template] | None = None

    def ensure_defaults(self) -> None:
        """Create the directory and seed the bundled default template if missing."""
        self.templates_dir.mkdir(parents=True, exist_ok=True)
        target = self.templates_dir / f"{DEFAULT_TEMPLATE_NAME}.txt"
        if target.exists():
            return
        bundled = (
            resources.files("clinical_transcriber")
            .joinpath("templates")
            .joinpath(f"{DEFAULT_TEMPLATE_NAME}.txt")
        )
        try:
            target.write_text(bundled.read_text(encoding="utf-8"), encoding="utf-8")
        except FileNotFoundError:
            logger.error("Bundled default template not found")

    def load(self) -> dict[str, Template]:
        """(Re)load every template in the directory."""
        self.ensure_defaults()
        templates = {}
        for path in sorted(self.templates_dir.glob("*.txt")):
            if not path.is_file():
                continue
            try:
                templates[path.stem] = Template.from_file(path)
            except (OSError, UnicodeDecodeError) as e:
                logger.error("Failed to load template %s: %s", path, e)
        self._templates = templates
        return dict(templates)

    @property
    def templates(self) -> dict[str, Template]:
        if self._templates is None:
            self.load()
        return self._templates

    def names(self) -> list[str]:
        """Template names, default first."""
        names = sorted(self.templates)
        if DEFAULT_TEMPLATE_NAME in names:
            names.remove(DEFAULT_TEMPLATE_NAME)
            names.insert(0, DEFAULT_TEMPLATE_NAME)
        return names

    def get(self, name: str) -> Template:
        try:
            return self.templates[name]
        except KeyError:
            raise KeyError(f"Unknown template: {name}. Available: {self.names()}") from None

    def render(
        self, name: str, transcript: str | None, context: dict[str, str] | None = None
    ) -> str:
        """Render the named template."""
        return self.get(name).render(transcript, context)
