"""Site Adapters.

This package contains concrete implementations of the SourceAdapter interface
for the scraped sites.

Available adapters (registry name -> class):
- pci_concursos: PCI Concursos open postings, one region per instance
- pci_news / pci_predicted: PCI Concursos date-grouped article lists
- qconcursos_news / qconcursos_predicted: QConcursos article lists
- jcconcursos_news: JC Concursos news list
- mock: In-memory adapter for tests
"""

import logging

from ..base import SourceAdapter
from ..source_config import ProviderConfig
from .jcconcursos import JCConcursosNewsAdapter
from .mock_adapter import MockAdapter
from .pci_articles import PciNewsAdapter, PciPredictedAdapter
from .pci_concursos import PciConcursosAdapter
from .qconcursos import QConcursosNewsAdapter, QConcursosPredictedAdapter

logger = logging.getLogger(__name__)

ADAPTER_REGISTRY: dict[str, type[SourceAdapter]] = {
    "pci_concursos": PciConcursosAdapter,
    "pci_news": PciNewsAdapter,
    "pci_predicted": PciPredictedAdapter,
    "qconcursos_news": QConcursosNewsAdapter,
    "qconcursos_predicted": QConcursosPredictedAdapter,
    "jcconcursos_news": JCConcursosNewsAdapter,
    "mock": MockAdapter,
}


def build_adapter(provider_name: str, config: ProviderConfig) -> SourceAdapter:
    """Instantiate the adapter named by a provider configuration.

    Raises:
        ValueError: If the adapter name is not registered or its params are invalid
    """
    adapter_cls = ADAPTER_REGISTRY.get(config.adapter)
    if adapter_cls is None:
        raise ValueError(
            f"Provider '{provider_name}' uses unknown adapter '{config.adapter}'. "
            f"Available: {', '.join(sorted(ADAPTER_REGISTRY))}"
        )

    try:
        adapter = adapter_cls(**config.params)
    except TypeError as e:
        raise ValueError(f"Invalid params for provider '{provider_name}': {e}") from e

    logger.debug("Built adapter", extra={"provider": provider_name, "adapter": repr(adapter)})
    return adapter


__all__ = [
    "ADAPTER_REGISTRY",
    "build_adapter",
    "JCConcursosNewsAdapter",
    "MockAdapter",
    "PciConcursosAdapter",
    "PciNewsAdapter",
    "PciPredictedAdapter",
    "QConcursosNewsAdapter",
    "QConcursosPredictedAdapter",
]
