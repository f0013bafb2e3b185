"""
Base Data Ingester

Common extract/validate/transform workflow for raster sources. Subclasses
say how to read one source, how to check it, and how to turn it into the
array the processing core consumes; the base class handles logging,
statistics and metrics.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import structlog

from ..exceptions import DecodeError
from ..monitoring.metrics import MetricsCollector


class BaseDataIngester(ABC):
    """
    Abstract base class for raster ingestion.

    Provides:
    - Structured logging bound to the concrete ingester type
    - Per-ingester statistics
    - Metrics collection
    """

    def __init__(self, metrics_collector: Optional[MetricsCollector] = None):
        """
        Initialize the base data ingester.

        Args:
            metrics_collector: Optional metrics collector for monitoring
        """
        self.metrics = metrics_collector or MetricsCollector(enable_prometheus=False)

        self.logger = structlog.get_logger(ingester_type=self.__class__.__name__)

        self.stats = {
            'sources_read': 0,
            'sources_missing': 0,
            'sources_failed': 0,
            'read_time': 0.0,
        }

    @abstractmethod
    def extract(self, source: Any) -> Any:
        """
        Extract raw data from the specified source.

        Args:
            source: Data source, such as a raster path

        Returns:
            Raw data in the format the ingester understands
        """

    @abstractmethod
    def validate(self, data: Any) -> bool:
        """
        Validate the extracted data.

        Args:
            data: Data to validate

        Returns:
            True if data is valid, False otherwise
        """

    @abstractmethod
    def transform(self, data: Any) -> Any:
        """
        Turn validated raw data into the output representation.

        Args:
            data: Raw extracted data

        Returns:
            Transformed data ready for processing
        """

    def ingest(self, source: Any) -> Any:
        """
        Complete ingestion workflow: extract, validate and transform.

        Raises:
            DecodeError: if the source cannot be read or fails validation
        """
        start_time = time.time()

        try:
            data = self.extract(source)

            if not self.validate(data):
                raise DecodeError(f"Validation failed for {source}", path=str(source))

            result = self.transform(data)

        except DecodeError:
            self.stats['sources_failed'] += 1
            self.metrics.increment_counter('ingestion_failure')
            self.logger.warning("Source could not be ingested", source=str(source))
            raise

        self.stats['sources_read'] += 1
        self.stats['read_time'] += time.time() - start_time
        self.metrics.increment_counter('ingestion_success')

        return result

    def get_stats(self) -> Dict[str, Any]:
        """Get ingestion statistics."""
        return dict(self.stats)
