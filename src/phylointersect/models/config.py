"""
Pydantic configuration models for phylointersect.

Configuration can be loaded from YAML files or built from CLI arguments.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Self

from pydantic import BaseModel, Field, model_validator

from phylointersect.core.constants import (
    DEFAULT_CAP,
    DEFAULT_MIN_COVERAGE_PERCENT,
    DEFAULT_MIN_DIVERSITY_SCORE,
    MAX_LINEAGE_DEPTH,
    ROOT_TAXID,
)

logger = logging.getLogger(__name__)


class ClassifierConfig(BaseModel):
    """
    Configuration for phylogenetic intersection classification.

    The cap bounds how many distinct taxa are examined per read and is the
    denominator of the taxonomic diversity score, so min_diversity_score
    should be chosen with the cap in mind: with cap=100 a score of 0.1
    means at least 11 distinct taxa among the read's hits.
    """

    cap: int = Field(
        default=DEFAULT_CAP,
        ge=1,
        description="Maximum distinct taxa examined per read",
    )
    min_coverage_percent: float = Field(
        default=DEFAULT_MIN_COVERAGE_PERCENT,
        ge=0,
        le=100,
        description="Minimum percentage of the read the top hit must cover",
    )
    min_diversity_score: float = Field(
        default=DEFAULT_MIN_DIVERSITY_SCORE,
        ge=0,
        le=1,
        description="Minimum diversity score for a read to reach the basic summary",
    )
    root_taxid: int = Field(
        default=ROOT_TAXID,
        ge=1,
        description="Taxon ID of the taxonomy root",
    )
    max_lineage_depth: int = Field(
        default=MAX_LINEAGE_DEPTH,
        ge=1,
        description="Maximum nodes followed when resolving a lineage",
    )
    strict_hits: bool = Field(
        default=False,
        description="Abort on malformed hit lines instead of skipping them",
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def warn_unreachable_summary(self) -> Self:
        """Warn when no read could ever reach the summary threshold."""
        max_score = (self.cap - 1) / self.cap
        if self.min_diversity_score > max_score:
            logger.warning(
                "min_diversity_score %.3f exceeds the highest score reachable "
                "with cap=%d (%.3f); the basic summary will be empty",
                self.min_diversity_score,
                self.cap,
                max_score,
            )
        return self

    @property
    def min_coverage_fraction(self) -> float:
        return self.min_coverage_percent / 100

    @classmethod
    def from_yaml(cls, path: Path) -> ClassifierConfig:
        """
        Load configuration from a YAML file.

        Keys may sit at the top level or under a 'classifier' section.
        Unknown keys are ignored with a warning.

        Raises:
            FileNotFoundError: If the YAML file does not exist.
            ValueError: If the YAML is not a mapping or values are invalid.
        """
        import yaml

        raw = yaml.safe_load(Path(path).read_text())
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            msg = f"YAML config must be a mapping, got {type(raw).__name__}"
            raise ValueError(msg)

        section: dict[str, Any] = raw.get("classifier", raw)
        known = {k: v for k, v in section.items() if k in cls.model_fields}
        unknown = sorted(set(section) - set(known) - {"classifier"})
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
        return cls(**known)

    def to_yaml_str(self) -> str:
        import yaml

        return yaml.dump(
            {"classifier": self.model_dump()}, default_flow_style=False, sort_keys=False
        )

    def to_yaml(self, path: Path) -> None:
        Path(path).write_text(self.to_yaml_str())
