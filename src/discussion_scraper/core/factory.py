from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from discussion_scraper.adapters.base import SiteAdapter
from discussion_scraper.adapters.registry import get as get_adapter
from discussion_scraper.adapters.sites import register_all
from discussion_scraper.core.models import PipelineSettings
from discussion_scraper.core.orchestrator import PipelineOrchestrator
from discussion_scraper.http.proxy import UrlProxy, build_proxy
from discussion_scraper.http.session import SessionFactory
from discussion_scraper.utils.naming import FileNaming


@dataclass(frozen=True)
class BuiltComponents:
    orchestrator: PipelineOrchestrator
    adapter: SiteAdapter
    proxy: UrlProxy
    naming: FileNaming


class ComponentFactory:
    """
    Factory responsible for wiring dependencies.
    Keeps main.py clean; the browser session factory is passed in because its
    lifetime is managed by the caller.
    """

    def build(
        self,
        settings: PipelineSettings,
        session_factory: SessionFactory,
        adapter: Optional[SiteAdapter] = None,
    ) -> BuiltComponents:
        adapter = adapter or self._adapter(settings)
        proxy = self._proxy(settings)
        naming = self._naming(settings)

        orchestrator = PipelineOrchestrator(
            settings=settings,
            adapter=adapter,
            session_factory=session_factory,
            proxy=proxy,
            naming=naming,
        )
        return BuiltComponents(orchestrator=orchestrator, adapter=adapter, proxy=proxy, naming=naming)

    # ---------- Builders (private) ----------

    def _adapter(self, settings: PipelineSettings) -> SiteAdapter:
        register_all()
        return get_adapter(settings.adapter)

    def _proxy(self, settings: PipelineSettings) -> UrlProxy:
        return build_proxy(settings.proxy)

    def _naming(self, settings: PipelineSettings) -> FileNaming:
        return FileNaming(settings.output_dir)
