"""Wiring of configuration, providers and pipeline components."""

from dataclasses import dataclass
from typing import Optional

from .amend import AmendmentService
from .assembler import CaptureAssembler
from .config import GlanceConfig
from .journal import CaptureJournal
from .notify import Notifier
from .paths import CapturePaths
from .producers import CaptureProducers
from .providers.base import Providers
from .repository import CaptureRepository
from .resolver import ContextResolver
from .screenshots import ScreenshotLibrary


@dataclass
class Services:
    config: GlanceConfig
    paths: CapturePaths
    journal: CaptureJournal
    repository: CaptureRepository
    library: ScreenshotLibrary
    amendments: AmendmentService
    providers: Optional[Providers] = None
    resolver: Optional[ContextResolver] = None
    producers: Optional[CaptureProducers] = None
    assembler: Optional[CaptureAssembler] = None


def build_services(
    config: GlanceConfig,
    providers: Optional[Providers] = None,
    notifier: Optional[Notifier] = None,
) -> Services:
    """Build every component from one explicit configuration.

    Capture components are only built when ``providers`` is given; listing
    and amending need no OS access.
    """
    paths = CapturePaths.from_config(config)
    journal = CaptureJournal(paths.journal_file, enabled=config.journal_enabled)
    repository = CaptureRepository(paths, journal=journal)
    services = Services(
        config=config,
        paths=paths,
        journal=journal,
        repository=repository,
        library=ScreenshotLibrary(paths, repository, journal=journal),
        amendments=AmendmentService(paths, repository, journal=journal),
    )

    if providers is not None:
        resolver = ContextResolver(providers.foreground, providers.browser, config.supported_browsers)
        services.providers = providers
        services.resolver = resolver
        services.producers = CaptureProducers(providers, paths, config)
        services.assembler = CaptureAssembler(
            config,
            resolver,
            repository,
            notifier=notifier,
            journal=journal,
        )

    return services
