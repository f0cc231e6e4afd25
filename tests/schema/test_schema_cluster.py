"""
Test suite for wordclasses.schema.cluster module.

Tests clustering schemas including:
- ClusterConfig defaults and constraints
- Output format parsing
- IterationStats / ClusterStats validation and JSON round trip
"""

import json

import pytest
from pydantic import ValidationError

from wordclasses.schema.cluster import ClusterConfig, ClusterStats, IterationStats, OutputFormat


class TestClusterConfig:
    """Test ClusterConfig schema."""

    def test_defaults(self):
        config = ClusterConfig()

        assert config.order == 2
        assert config.nthreads == 1
        assert config.nclasses == 512
        assert config.niters == 20
        assert config.vparts == 3
        assert config.format == OutputFormat.TSV
        assert config.seed == 0

    def test_order_must_exceed_one(self):
        with pytest.raises(ValidationError, match="greater than 1"):
            ClusterConfig(order=1)

    @pytest.mark.parametrize("field", ["nthreads", "nclasses", "niters", "vparts"])
    def test_counts_must_be_positive(self, field):
        with pytest.raises(ValidationError, match="greater than 0"):
            ClusterConfig(**{field: 0})

    def test_format_is_case_insensitive(self):
        assert ClusterConfig(format="SRILM").format == OutputFormat.SRILM
        assert ClusterConfig(format="tsv").format == OutputFormat.TSV

    def test_unknown_format(self):
        with pytest.raises(ValidationError):
            ClusterConfig(format="arpa")

    def test_unknown_option(self):
        with pytest.raises(ValidationError):
            ClusterConfig(nclusters=10)

    def test_malformed_number(self):
        with pytest.raises(ValidationError):
            ClusterConfig(nclasses="many")


class TestClusterStats:
    """Test run statistics schemas."""

    def _stats(self):
        return ClusterStats(
            vocabulary_size=3,
            num_tokens=8,
            num_contexts=3,
            num_classes=2,
            initial_objective=-5.27,
            final_objective=-2.77,
            iterations=[
                IterationStats(iteration=0, partition=0, num_updates=1, objective=-2.77, elapsed_seconds=0.01),
                IterationStats(iteration=1, partition=0, num_updates=0, objective=-2.77, elapsed_seconds=0.01),
            ],
            total_seconds=0.02,
        )

    def test_total_updates(self):
        assert self._stats().total_updates == 1

    def test_json_round_trip(self):
        stats = self._stats()
        data = json.loads(stats.model_dump_json())

        assert data["vocabulary_size"] == 3
        assert len(data["iterations"]) == 2
        assert ClusterStats.model_validate(data) == stats

    def test_negative_updates_rejected(self):
        with pytest.raises(ValidationError):
            IterationStats(iteration=0, partition=0, num_updates=-1, objective=0.0, elapsed_seconds=0.0)
