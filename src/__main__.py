#!/usr/bin/env python3
"""
highlightdown - Render e-reader highlights to Markdown

Reads a book's annotations (KOReader style: text, note, colour, drawer,
chapter, page, positions, timestamp) from a JSON file and renders them
through a highlight template into one Markdown file.

The command is a ChRIS plugin: chris_plugin parses the options and supplies
inputdir/outputdir, and the work happens in small state-passing stages.

Philosophy:
    - Templates are plain Markdown with {{variables}} and {{#blocks}}
    - Rendering never fails on template input; bad syntax renders as text
    - Every rendered block can carry KOHL markers for later re-imports

Usage:
    highlightdown inputdir/ outputdir/ --inputFile book.json

Examples:
    # Render with the default template
    highlightdown . out/ --inputFile book.json

    # Callout template, Obsidian-style markers, wider merge gap
    highlightdown . out/ --inputFile book.json --template callout --commentStyle md --maxGap 400

    # User templates take precedence over built-ins with the same id
    highlightdown . out/ --inputFile book.json --templateDir ~/vault/templates --template mine

    # Show a template's source, highlighted
    highlightdown . out/ --template callout --printTemplate
"""

import json
import sys
from pathlib import Path
from argparse import ArgumentParser, Namespace, ArgumentDefaultsHelpFormatter

from chris_plugin import chris_plugin
from pygments import highlight
from pygments.formatters import TerminalFormatter

from .config import appsettings
from .lib import TemplateLibrary, TemplateError, LruCache, __version__, LOG, state_connectToLogger
from .lib.lexer import get_lexer
from .models import ProgramState, pipeline
from .models.annotations import annotations_fromList


# Define CLI arguments
parser = ArgumentParser(
    description="highlightdown - Render e-reader highlights to Markdown through templates",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument(
    "--inputFile", default="", type=str, help="Annotations JSON file (relative to inputdir)"
)

parser.add_argument(
    "--template",
    default=appsettings.default_template,
    type=str,
    help="Template id: a built-in name or a file stem in --templateDir",
)

parser.add_argument(
    "--templateDir",
    default=None,
    type=str,
    help="Directory of user templates (<id>.md), searched before the built-ins",
)

parser.add_argument(
    "--commentStyle",
    default=appsettings.comment_style,
    choices=["html", "md", "none"],
    help="KOHL marker style preceding each rendered block",
)

parser.add_argument(
    "--maxGap",
    default=appsettings.max_highlight_gap,
    type=int,
    help=(
        "Largest distance still merged into one block: characters between "
        "positioned highlights, pages between highlights without positions"
    ),
)

parser.add_argument(
    "--outputFile",
    default=None,
    type=str,
    help="Output Markdown filename. Defaults to the input file stem with .md",
)

parser.add_argument(
    "--printTemplate",
    action="store_true",
    help="Print the selected template's source with syntax highlighting and exit",
)

parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="Increase output verbosity (can be repeated: -v, -vv, -vvv)",
)

parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")


def library_create(state: ProgramState) -> TemplateLibrary:
    return TemplateLibrary(
        user_dir=state.templateDir,
        cache=LruCache(max_size=appsettings.pipeline_cache_size),
    )


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Validate environment and resolve all file paths.

    Args:
        inputstate: Initial program state with CLI options

    Returns:
        ProgramState with added fields:
            - inputSourceFile: Resolved path to the annotations JSON
            - markdownOutputFile: Path the Markdown will be written to
            - envOK: True if environment is valid

    Exits:
        1 if the input file or the template directory is missing
    """

    state = inputstate.copy()

    LOG("Checking environment...", level=2)

    if state.templateDir and not Path(state.templateDir).is_dir():
        print(f"Error: Template directory not found: {state.templateDir}", file=sys.stderr)
        state.envOK = False
        sys.exit(1)

    if state.printTemplate:
        state.envOK = True
        return state

    if not state.inputFile:
        print("Error: --inputFile is required", file=sys.stderr)
        state.envOK = False
        sys.exit(1)

    input_file = state.inputdir / state.inputFile
    if not input_file.is_file():
        print(f"Error: Input file not found: {input_file}", file=sys.stderr)
        state.envOK = False
        sys.exit(1)

    state.inputSourceFile = input_file
    LOG(f"Input file: {input_file}", level=2)

    state.outputdir.mkdir(parents=True, exist_ok=True)
    output_name = state.outputFile or f"{input_file.stem}.md"
    state.markdownOutputFile = state.outputdir / output_name
    LOG(f"Output file: {state.markdownOutputFile}", level=2)

    state.envOK = True
    return state


def annotations_load(inputstate: ProgramState) -> ProgramState:
    """
    Read annotations from the input JSON file.

    Accepts either a list of annotation objects or an object holding them
    under an "annotations" key (sidecar exports carry book metadata too).

    Args:
        inputstate: Program state with inputSourceFile set

    Returns:
        ProgramState with added field:
            - annotations: List[Annotation]

    Exits:
        1 if the file cannot be read or holds no annotation list
    """

    state = inputstate.copy()
    if state.printTemplate:
        return state

    LOG("Reading annotations...", level=1)

    try:
        raw = json.loads(state.inputSourceFile.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        print(f"Error reading input file: {e}", file=sys.stderr)
        sys.exit(1)

    if isinstance(raw, dict):
        raw = raw.get("annotations")
    if not isinstance(raw, list):
        print("Error: Input holds no list of annotations", file=sys.stderr)
        sys.exit(1)

    try:
        state.annotations = annotations_fromList(raw)
    except (TypeError, ValueError) as e:
        print(f"Error: Malformed annotation: {e}", file=sys.stderr)
        sys.exit(1)
    LOG(f"Loaded {len(state.annotations)} annotations", level=2)
    return state


def template_print(state: ProgramState) -> None:
    """Print the selected template with terminal syntax highlighting"""
    library = library_create(state)
    try:
        source = library.template_load(state.template)
    except TemplateError as e:
        print(f"Template error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.stdout.write(highlight(source, get_lexer(), TerminalFormatter()))


def markdown_render(inputstate: ProgramState) -> ProgramState:
    """
    Render annotations through the selected template and write Markdown.

    Args:
        inputstate: Program state with annotations loaded

    Returns:
        ProgramState with added field:
            - renderResult: Dict containing:
                - status: bool (render success)
                - output_file: str (path to the Markdown file)
                - annotation_count: int
                - template: str (template id used)

    Exits:
        1 if no templates can be loaded or the output cannot be written
    """

    state = inputstate.copy()

    if state.printTemplate:
        template_print(state)
        state.renderResult = {"status": True, "printed": True}
        return state

    LOG("Rendering highlights...", level=1)

    library = library_create(state)
    try:
        markdown = library.highlights_render(
            state.annotations or [],
            template_id=state.template,
            comment_style=state.commentStyle,
            max_highlight_gap=state.maxGap,
        )
    except TemplateError as e:
        print(f"Template error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        state.markdownOutputFile.write_text(markdown + "\n", encoding="utf-8")
    except OSError as e:
        print(f"Error writing output file: {e}", file=sys.stderr)
        sys.exit(1)

    LOG(f"Wrote {state.markdownOutputFile}", level=2)
    state.renderResult = {
        "status": True,
        "output_file": str(state.markdownOutputFile),
        "annotation_count": len(state.annotations or []),
        "template": state.template,
    }
    return state


def results_report(inputstate: ProgramState) -> ProgramState:
    """
    Display rendering results to user.

    Args:
        inputstate: Program state with renderResult populated

    Returns:
        ProgramState unchanged (terminal pipeline stage)

    Exits:
        1 if renderResult is None
    """
    state: ProgramState = inputstate.copy()
    if not state.renderResult:
        print("Error: Rendering failed", file=sys.stderr)
        sys.exit(1)
    if state.renderResult.get("printed"):
        return state

    LOG("✓ Rendering successful!", level=1)
    LOG(f"  Output: {state.renderResult['output_file']}", level=1)
    LOG(f"  Annotations: {state.renderResult['annotation_count']}", level=1)
    LOG(f"  Template: {state.renderResult['template']}", level=1)
    return state


@chris_plugin(
    parser=parser,
    title="highlightdown - Render e-reader highlights to Markdown",
    category="Utility",
    min_memory_limit="100Mi",
    min_cpu_limit="500m",
)
def main(options: Namespace, inputdir: Path, outputdir: Path):
    """
    Main entry point - render a book's highlights from JSON to Markdown.

    Orchestrates the pipeline:
        1. env_check: Validate paths and environment
        2. annotations_load: Read annotations JSON
        3. markdown_render: Render through the template and write Markdown
        4. results_report: Display results to user

    Args:
        options: CLI arguments from argparse
        inputdir: Directory containing the annotations file
        outputdir: Directory where the Markdown will be written

    Note:
        This function is wrapped by @chris_plugin which handles CLI
        argument parsing and invokes this function with parsed values.
    """

    state: ProgramState = ProgramState.state_createFromNamespace(
        options=options, inputdir=inputdir, outputdir=outputdir
    )

    # Connect state to logger for entire pipeline
    state_connectToLogger(state)

    pipeline(state, env_check, annotations_load, markdown_render, results_report)


if __name__ == "__main__":
    main()  # type: ignore  # @chris_plugin decorator transforms signature
