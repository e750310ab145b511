"""
Template library: built-in and user templates

Templates are Markdown files with an optional YAML frontmatter block:

    ---
    description: Highlight as a callout, coloured after the reader
    ---
    > [!{{callout}}] Page {{pageno}}
    ...

Built-ins ship in the package's ``templates/`` directory. A user directory,
when configured, is searched first so built-ins can be overridden by id.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import yaml

from ..config import appsettings, CommentStyle
from ..models.annotations import Annotation
from ..models.filters import PipelineCache
from .cache import LruCache
from .compiler import RenderFn, compile
from .log import LOG, LOG_error
from .renderer import annotations_render
from .validator import template_validate


BUILTIN_DIR = Path(__file__).resolve().parent.parent / "templates"
TEMPLATE_SUFFIX = ".md"

FRONTMATTER = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)\s*", re.DOTALL)
MARKDOWN_RULE = re.compile(r"^\s*(-{3,}|_{3,}|\*{3,})\s*$", re.MULTILINE)
HTML_RULE = re.compile(r"<hr\s*/?>", re.IGNORECASE)
EXCESS_NEWLINES = re.compile(r"\n{3,}")


class TemplateError(Exception):
    """Raised when templates cannot be loaded at all"""
    pass


@dataclass(frozen=True)
class TemplateDefinition:
    """
    A template known to the library

    Attributes:
        id: File stem, used to select the template
        name: Display name ("compact-list" → "Compact List")
        description: From the frontmatter, or a generic sentence
        content: Template text without frontmatter
        builtIn: Shipped with the package
    """
    id: str
    name: str
    description: str
    content: str
    builtIn: bool = True


@dataclass(frozen=True)
class TemplateFeatures:
    """
    Properties of a template that change how blocks are joined

    Attributes:
        autoInsertDivider: The template has no rule of its own, so rendered
                           groups are separated with "---"
    """
    autoInsertDivider: bool = True


@dataclass(frozen=True)
class CompiledTemplate:
    """Render function plus the features detected in its source"""
    fn: RenderFn
    features: TemplateFeatures
    source: str = ""


def name_fromId(template_id: str) -> str:
    """
    Example:
        >>> name_fromId("enhanced-blockquote")
        'Enhanced Blockquote'
    """
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), template_id.replace("-", " "))


def frontmatter_split(text: str) -> tuple[Dict[str, Any], str]:
    """
    Separate YAML frontmatter from template content

    Text that opens with '---' but does not hold a YAML mapping is left
    intact: it is a Markdown rule, not frontmatter.

    Returns:
        (metadata, content)
    """
    match = FRONTMATTER.match(text)
    if not match:
        return {}, text
    try:
        meta = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        LOG(f"Ignoring unparsable template frontmatter: {e}", level=2)
        return {}, text
    if not isinstance(meta, dict):
        return {}, text
    return meta, text[match.end():]


def features_detect(content: str) -> TemplateFeatures:
    """Whether rendered groups need a divider between them"""
    has_divider = bool(MARKDOWN_RULE.search(content) or HTML_RULE.search(content))
    return TemplateFeatures(autoInsertDivider=not has_divider)


def definition_read(path: Path, builtIn: bool) -> TemplateDefinition:
    """Parse one template file"""
    template_id = path.stem
    name = name_fromId(template_id)
    meta, content = frontmatter_split(path.read_text(encoding="utf-8"))
    description = str(meta.get("description") or f"The {name} template.").strip()
    return TemplateDefinition(
        id=template_id,
        name=name,
        description=description,
        content=content,
        builtIn=builtIn,
    )


class TemplateLibrary:
    """
    Loads, validates, compiles and caches highlight templates

    Attributes:
        user_dir: Directory of user templates (``<id>.md``), searched first
        builtins_dir: Directory of shipped templates
        cache: Filter-pipeline cache shared by every compiled template
        builtIns: Built-in definitions by id, loaded lazily
    """

    def __init__(
        self,
        user_dir: Optional[Union[str, Path]] = None,
        cache: Optional[PipelineCache] = None,
        builtins_dir: Union[str, Path] = BUILTIN_DIR,
    ) -> None:
        self.user_dir = Path(user_dir) if user_dir else None
        self.builtins_dir = Path(builtins_dir)
        self.cache: PipelineCache = (
            cache if cache is not None else LruCache(max_size=appsettings.pipeline_cache_size)
        )
        self.builtIns: Dict[str, TemplateDefinition] = {}
        self.compiled: LruCache[str, CompiledTemplate] = LruCache(
            max_size=appsettings.template_cache_size
        )

    def templates_loadBuiltIn(self) -> Dict[str, TemplateDefinition]:
        """
        Load every built-in template (once)

        Raises:
            TemplateError: If the built-in directory is missing or empty
        """
        if self.builtIns:
            return self.builtIns
        if not self.builtins_dir.is_dir():
            raise TemplateError(f"Built-in template directory not found: {self.builtins_dir}")

        for path in sorted(self.builtins_dir.glob(f"*{TEMPLATE_SUFFIX}")):
            definition = definition_read(path, builtIn=True)
            self.builtIns[definition.id] = definition

        if not self.builtIns:
            raise TemplateError(f"No templates found in {self.builtins_dir}")
        LOG(f"Loaded {len(self.builtIns)} built-in templates", level=2)
        return self.builtIns

    def templates_list(self) -> List[TemplateDefinition]:
        """Built-ins plus user templates; user templates shadow built-ins by id"""
        definitions = dict(self.templates_loadBuiltIn())
        if self.user_dir and self.user_dir.is_dir():
            for path in sorted(self.user_dir.glob(f"*{TEMPLATE_SUFFIX}")):
                definitions[path.stem] = definition_read(path, builtIn=False)
        return sorted(definitions.values(), key=lambda d: d.id)

    def fallback_get(self) -> TemplateDefinition:
        """The default built-in template"""
        builtIns = self.templates_loadBuiltIn()
        fallback = builtIns.get(appsettings.default_template)
        if fallback is None:
            raise TemplateError(
                f"Default template '{appsettings.default_template}' is not a built-in"
            )
        return fallback

    def definition_find(self, template_id: str) -> TemplateDefinition:
        """User template, else built-in, else the default"""
        if self.user_dir:
            path = self.user_dir / f"{template_id}{TEMPLATE_SUFFIX}"
            if path.is_file():
                LOG(f"Using user template '{template_id}' from {path}", level=2)
                return definition_read(path, builtIn=False)

        builtIn = self.templates_loadBuiltIn().get(template_id)
        if builtIn is not None:
            LOG(f"Using built-in template '{template_id}'", level=2)
            return builtIn

        LOG_error(f"Template '{template_id}' not found; falling back to '{appsettings.default_template}'")
        return self.fallback_get()

    def template_load(self, template_id: Optional[str] = None) -> str:
        """
        Template content by id, validated

        A template that fails validation is replaced by the default template
        and the validation errors are logged.
        """
        template_id = template_id or appsettings.default_template
        definition = self.definition_find(template_id)

        validation = template_validate(definition.content)
        for warning in validation.warnings:
            LOG(f"Template '{definition.id}': {warning}", level=2)
        if not validation.isValid:
            LOG_error(
                f"Template '{definition.id}' failed validation "
                f"({'; '.join(validation.errors)}); falling back to "
                f"'{appsettings.default_template}'"
            )
            return self.fallback_get().content
        return definition.content

    def compiled_get(self, template_id: Optional[str] = None) -> CompiledTemplate:
        """Compiled template by id, from cache when possible"""
        template_id = template_id or appsettings.default_template
        cached = self.compiled.get(template_id)
        if cached is not None:
            return cached

        content = self.template_load(template_id)
        compiled = CompiledTemplate(
            fn=compile(content, cache=self.cache),
            features=features_detect(content),
            source=content,
        )
        self.compiled.set(template_id, compiled)
        return compiled

    def cache_clear(self) -> None:
        """Forget compiled templates, e.g. after user templates changed"""
        self.compiled.clear()

    def highlights_render(
        self,
        annotations: Sequence[Annotation],
        template_id: Optional[str] = None,
        comment_style: Optional[CommentStyle] = None,
        max_highlight_gap: Optional[float] = None,
    ) -> str:
        """
        Render a book's annotations with a library template

        Args:
            annotations: Annotations in any order
            template_id: Template to use (default from settings)
            comment_style: Marker style (default from settings)
            max_highlight_gap: Grouping threshold (default from settings)

        Returns:
            Markdown with at most one blank line between blocks, trimmed
        """
        compiled = self.compiled_get(template_id)
        rendered = annotations_render(
            annotations,
            compiled.fn,
            comment_style or appsettings.comment_style,
            max_highlight_gap if max_highlight_gap is not None else appsettings.max_highlight_gap,
            divider=compiled.features.autoInsertDivider,
        )
        return EXCESS_NEWLINES.sub("\n\n", rendered).strip()

    def defaults_install(self) -> List[Path]:
        """
        Copy built-in templates into the user directory

        Existing files are never overwritten.

        Returns:
            Paths that were written

        Raises:
            TemplateError: If no user directory is configured
        """
        if self.user_dir is None:
            raise TemplateError("No user template directory configured")
        self.user_dir.mkdir(parents=True, exist_ok=True)

        written: List[Path] = []
        for definition in self.templates_loadBuiltIn().values():
            target = self.user_dir / f"{definition.id}{TEMPLATE_SUFFIX}"
            if target.exists():
                continue
            meta = yaml.safe_dump(
                {"description": definition.description}, allow_unicode=True, sort_keys=False
            ).strip()
            target.write_text(f"---\n{meta}\n---\n\n{definition.content}", encoding="utf-8")
            written.append(target)
        LOG(f"Installed {len(written)} default templates into {self.user_dir}", level=2)
        return written
