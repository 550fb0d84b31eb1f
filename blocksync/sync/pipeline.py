"""SyncBatch: two-pass sync of a batch of documents."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor, as_completed

from blocksync.blocks.document import DocumentConverter
from blocksync.blocks.models import AssetRequest, BlockNode, Diagnostic, DiagnosticCode, SourceDocument
from blocksync.errors import BatchClosedError, BatchIncompleteError
from blocksync.ids import is_source_id, normalize_source_id
from blocksync.registry.links import LinkRegistry
from blocksync.registry.media import MediaRegistry
from blocksync.sync.interfaces import AssetStore, ContentFetcher, ContentStore
from blocksync.sync.models import DocumentResult, ResolutionReport, SyncError, SyncReport
from blocksync.sync.resolver import LinkResolver

logger = logging.getLogger(__name__)


def _child_documents(blocks: list[BlockNode]) -> Iterator[BlockNode]:
    """Child page/database blocks anywhere in the tree."""
    stack = list(reversed(blocks))
    while stack:
        block = stack.pop()
        if block.type in ("child_page", "child_database"):
            yield block
        stack.extend(reversed(block.children))


class SyncBatch:
    """One batch of documents synced with the two-pass protocol.

    Pass 1 (``convert``) may run concurrently for many documents. When the
    caller has seen every Pass 1 call commit it signals ``complete()``;
    only then may Pass 2 (``resolve``) run.
    """

    def __init__(
        self,
        converter: DocumentConverter,
        links: LinkRegistry,
        store: ContentStore,
        media: MediaRegistry | None = None,
        assets: AssetStore | None = None,
    ) -> None:
        self.converter = converter
        self.links = links
        self.media = media
        self.store = store
        self.assets = assets
        self.results: dict[str, DocumentResult] = {}
        self._complete = threading.Event()
        self._lock = threading.Lock()

    # -- pass 1 ----------------------------------------------------------------

    def convert(self, document: SourceDocument) -> DocumentResult:
        """Convert one document, commit it to the store and register its locator.

        Failures are recorded on the result; they never propagate to the batch.
        """
        if self._complete.is_set():
            raise BatchClosedError(f"batch already completed; cannot add {document.source_id}")

        try:
            for child in _child_documents(document.blocks):
                if not is_source_id(normalize_source_id(child.id)):
                    continue
                kind = "collection" if child.type == "child_database" else "document"
                self.links.register_stub(child.id, str(child.payload.get("title") or ""), kind)

            converted = self.converter.convert_document(document, links=self.links, media=self.media)
            locator = self.store.upsert(
                document.source_id, document.title, converted.markup, document.parent_id
            )
            self.links.register(document.source_id, locator, document.title, document.kind)
            result = DocumentResult(
                source_id=document.source_id,
                title=document.title,
                locator=locator,
                diagnostics=converted.diagnostics,
                pending_refs=converted.pending_refs,
                asset_requests=converted.asset_requests,
            )
        except Exception as e:
            logger.error("sync failed for %s: %s", document.source_id, e, exc_info=True)
            result = self._failed(document.source_id, str(e))

        with self._lock:
            self.results[document.source_id] = result
        return result

    def fetch_and_convert(self, fetcher: ContentFetcher, source_id: str) -> DocumentResult:
        try:
            document = fetcher.fetch(source_id)
        except Exception as e:
            logger.error("fetch failed for %s: %s", source_id, e)
            result = self._failed(normalize_source_id(source_id), f"fetch failed: {e}")
            with self._lock:
                self.results[result.source_id] = result
            return result
        return self.convert(document)

    # -- assets ----------------------------------------------------------------

    def pending_assets(self) -> list[AssetRequest]:
        seen: dict[str, AssetRequest] = {}
        with self._lock:
            for result in self.results.values():
                for request in result.asset_requests:
                    seen.setdefault(request.identifier, request)
        return list(seen.values())

    def process_assets(self) -> tuple[int, list[Diagnostic]]:
        """Copy requested assets and register them. Returns (copied, diagnostics)."""
        if self.assets is None or self.media is None:
            return 0, []
        copied = 0
        diagnostics: list[Diagnostic] = []
        for request in self.pending_assets():
            try:
                asset = self.assets.copy(request)
            except Exception as e:
                logger.warning("asset copy failed for %s: %s", request.identifier, e)
                diagnostics.append(
                    Diagnostic(
                        code=DiagnosticCode.asset_copy_failed,
                        message=str(e),
                        source_id=request.identifier,
                    )
                )
                continue
            self.media.register(
                request.identifier, asset.asset_id, request.source_signature, asset.locator
            )
            copied += 1
        return copied, diagnostics

    # -- barrier ---------------------------------------------------------------

    def complete(self) -> None:
        """Signal that every Pass 1 conversion of this batch has committed."""
        self._complete.set()
        logger.debug("batch complete (%d documents)", len(self.results))

    @property
    def is_complete(self) -> bool:
        return self._complete.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._complete.wait(timeout)

    # -- pass 2 ----------------------------------------------------------------

    def resolve(self, timeout: float = 0.0) -> ResolutionReport:
        """Rewrite placeholders across everything in the store.

        Waits up to *timeout* seconds for the barrier, then raises
        BatchIncompleteError if it is still not signalled.
        """
        if not self._complete.wait(timeout):
            raise BatchIncompleteError("resolve() called before complete()")
        resolver = LinkResolver(self.links, self.media)
        return resolver.resolve_store(self.store)

    # -- orchestration ---------------------------------------------------------

    def run(
        self, source_ids: Iterable[str], fetcher: ContentFetcher, max_workers: int = 4
    ) -> SyncReport:
        """Fetch and convert on a thread pool, copy assets, then run Pass 2."""
        start = time.monotonic()
        report = SyncReport()

        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = [pool.submit(self.fetch_and_convert, fetcher, sid) for sid in source_ids]
            for future in as_completed(futures):
                result = future.result()
                if result.failed:
                    report.failed += 1
                    report.errors.append(
                        SyncError(source_id=result.source_id, error=result.diagnostics[0].message)
                    )
                else:
                    report.synced += 1
                report.diagnostics.extend(result.diagnostics)

        report.assets_copied, asset_diagnostics = self.process_assets()
        report.diagnostics.extend(asset_diagnostics)

        self.complete()
        report.resolution = self.resolve()
        report.diagnostics.extend(report.resolution.diagnostics)
        report.duration = time.monotonic() - start
        logger.info(
            "synced %d documents (%d failed) in %.2fs", report.synced, report.failed, report.duration
        )
        return report

    # -- helpers ---------------------------------------------------------------

    @staticmethod
    def _failed(source_id: str, error: str) -> DocumentResult:
        return DocumentResult(
            source_id=source_id,
            failed=True,
            diagnostics=[
                Diagnostic(
                    code=DiagnosticCode.document_failed,
                    message=error,
                    severity="error",
                    document_id=source_id,
                )
            ],
        )
