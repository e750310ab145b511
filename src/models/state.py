"""
Program state carried through the rendering pipeline

``ProgramState`` is the single record every CLI stage reads and extends;
``pipeline()`` threads it through the stages in order. Stages never mutate
the state they receive: each works on ``state.copy()`` and returns it.
"""

import dataclasses
from argparse import Namespace
from dataclasses import dataclass, field
from functools import reduce
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Type, TypeVar

if TYPE_CHECKING:
    from .annotations import Annotation


PS = TypeVar("PS", bound="ProgramState")
Stage = Callable[["ProgramState"], "ProgramState"]


@dataclass
class ProgramState:
    """
    Options and intermediate results of one ``highlightdown`` run

    Filled in stage by stage:

        options           inputdir, outputdir, verbosity, inputFile, template,
                          templateDir, commentStyle, maxGap, outputFile,
                          printTemplate
        env_check         inputSourceFile, markdownOutputFile, envOK
        annotations_load  annotations
        markdown_render   renderResult

    ``commentStyle`` and ``maxGap`` left as None defer to ``appsettings``.
    ``renderResult`` holds status, output_file, annotation_count and
    template, or ``{"status": True, "printed": True}`` after
    ``--printTemplate``.
    """

    inputdir: Optional[Path] = None
    outputdir: Optional[Path] = None
    verbosity: int = 1
    inputFile: str = ""
    template: Optional[str] = None
    templateDir: Optional[str] = None
    commentStyle: Optional[str] = None
    maxGap: Optional[int] = None
    outputFile: Optional[str] = None
    printTemplate: bool = False

    envOK: bool = False
    inputSourceFile: Path = field(default=Path("/"))
    markdownOutputFile: Path = field(default=Path("/"))
    annotations: Optional[List["Annotation"]] = None
    renderResult: Optional[Dict[str, Any]] = None

    @classmethod
    def options_names(cls) -> List[str]:
        """Field names that may be set from the command line"""
        return [f.name for f in dataclasses.fields(cls)]

    @classmethod
    def state_createFromNamespace(
        cls: Type[PS], options: Namespace, inputdir: Path, outputdir: Path
    ) -> PS:
        """
        Initial state from parsed CLI options

        Options the state has no field for (chris_plugin adds a few of its
        own) are dropped; the directories come from the plugin wrapper.
        """
        known = set(cls.options_names())
        chosen = {name: value for name, value in vars(options).items() if name in known}
        chosen.update(inputdir=Path(inputdir), outputdir=Path(outputdir))
        return cls(**chosen)

    def copy(self: PS) -> PS:
        """Shallow copy for the next stage to extend"""
        return dataclasses.replace(self)


def pipeline(initial_state: PS, *stages: Stage) -> PS:
    """
    Run ``stages`` left to right, each receiving the previous stage's state

    Example:
        pipeline(state, env_check, annotations_load, markdown_render, results_report)
    """
    return reduce(lambda state, stage: stage(state), stages, initial_state)
