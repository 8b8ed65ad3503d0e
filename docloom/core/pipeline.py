"""Batch driver: scan → slice → assemble → write.

Usage:
    corpus = JavaCorpus("/path/to/project")
    pipeline = BundlePipeline(corpus, load_settings(), writer=FileOutputWriter("out"))
    result = pipeline.run()
"""

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .config import Settings
from .context.assembler import ContextAssembler
from .context.collectors import (
    CalledMethodCollector,
    InvocationSliceEngine,
    OutputWriter,
    SliceEngine,
    TypeCollector,
)
from .context.models import ContextBundle
from .corpus import CorpusQuery
from .scan.entry_scanner import EntryPointScanner
from .scan.mapper_xml import MapperXmlIndex
from .scan.models import EntryPoint
from .scan.validation import log_scan_stats

logger = logging.getLogger(__name__)

_UNSAFE_PATH_CHARS = re.compile(r"[^\w.$-]")

CLASS_BUNDLE_NAME = "_class"


def bundle_path(entry: EntryPoint, per_class: bool = False) -> str:
    """Relative output path: "<class_fqn>/<method_name>.md" with unsafe characters replaced."""
    directory = _UNSAFE_PATH_CHARS.sub("_", entry.class_fqn) or "_"
    name = CLASS_BUNDLE_NAME if per_class else (_UNSAFE_PATH_CHARS.sub("_", entry.method_name) or "_")
    return f"{directory}/{name}.md"


@dataclass
class PipelineResult:
    """Summary of one pipeline run."""

    entries: List[EntryPoint] = field(default_factory=list)
    bundles: List[ContextBundle] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0


class BundlePipeline:
    """Scan a corpus and write one context bundle per entry point.

    Args:
        corpus: Corpus to scan and read from
        settings: DocLoom settings (defaults if None)
        writer: Destination for bundles
        slice_engine: Call-graph slice engine (InvocationSliceEngine if None)
        type_collector: Optional related-type collector override
        called_collector: Optional called-method collector override
        per_class: Build one class bundle per entry class instead of one per method
    """

    def __init__(
        self,
        corpus: CorpusQuery,
        settings: Optional[Settings] = None,
        writer: Optional[OutputWriter] = None,
        slice_engine: Optional[SliceEngine] = None,
        type_collector: Optional[TypeCollector] = None,
        called_collector: Optional[CalledMethodCollector] = None,
        per_class: bool = False,
    ):
        if writer is None:
            raise ValueError("BundlePipeline requires an OutputWriter")
        self._settings = settings or Settings()
        self._xml_index = MapperXmlIndex()
        self._scanner = EntryPointScanner(corpus, self._settings, self._xml_index)
        self._slice_engine = slice_engine or InvocationSliceEngine(corpus)
        self._assembler = ContextAssembler(
            corpus,
            writer,
            config=self._settings.context,
            type_collector=type_collector,
            called_collector=called_collector,
            xml_index=self._xml_index,
        )
        self._per_class = per_class

    def scan(self, scope: Optional[Iterable[str]] = None) -> List[EntryPoint]:
        entries = self._scanner.scan(scope)
        log_scan_stats(entries)
        return entries

    def run(self, scope: Optional[Iterable[str]] = None) -> PipelineResult:
        """Scan and build bundles. A failing entry is logged and skipped."""
        start = time.time()
        result = PipelineResult(entries=self.scan(scope))

        built_classes = set()
        for entry in result.entries:
            if self._per_class:
                if entry.class_fqn in built_classes:
                    continue
                built_classes.add(entry.class_fqn)

            try:
                call_slice = self._slice_engine.analyze(entry)
                out_path = bundle_path(entry, self._per_class)
                if self._per_class:
                    bundle = self._assembler.build_for_class(entry, call_slice, out_path)
                else:
                    bundle = self._assembler.build(entry, call_slice, out_path)
                result.bundles.append(bundle)
            except Exception as e:
                msg = f"Failed to build bundle for {entry.class_fqn}#{entry.method}: {e}"
                logger.warning(msg)
                result.errors.append(msg)

        result.elapsed_seconds = time.time() - start
        logger.info(
            f"Pipeline finished: {len(result.bundles)} bundles from {len(result.entries)} entries, "
            f"{len(result.errors)} errors in {result.elapsed_seconds:.1f}s"
        )
        return result
