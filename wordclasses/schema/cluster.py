from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, ConfigDict, field_validator


class OutputFormat(str, Enum):
    """Serialization of the final word-to-class mapping."""
    SRILM = "srilm"
    TSV = "tsv"


class ClusterConfig(BaseModel):
    """
    User options for a class induction run.

    Defaults match the command line defaults of ``text2classes``.
    """
    order: int = Field(default=2, gt=1, description="n-gram model order (context length is order-1)")
    nthreads: int = Field(default=1, gt=0, description="Number of parallel exchange workers")
    nclasses: int = Field(default=512, gt=0, description="Number of word classes")
    niters: int = Field(default=20, gt=0, description="Number of exchange iterations")
    vparts: int = Field(default=3, gt=0, description="Number of vocabulary partitions")
    format: OutputFormat = Field(default=OutputFormat.TSV, description="Output format")
    seed: Optional[int] = Field(default=0, description="Seed of the vocabulary shuffle")

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "order": 2,
                "nthreads": 4,
                "nclasses": 512,
                "niters": 20,
                "vparts": 3,
                "format": "tsv",
                "seed": 0
            }
        }
    )

    @field_validator("format", mode="before")
    @classmethod
    def _lowercase_format(cls, value):
        if isinstance(value, str):
            return value.lower()
        return value


class IterationStats(BaseModel):
    """Progress record of one exchange iteration."""
    iteration: int = Field(..., ge=0, description="Zero-based iteration number")
    partition: int = Field(..., ge=0, description="Vocabulary partition processed")
    num_updates: int = Field(..., ge=0, description="Words whose class changed")
    objective: float = Field(..., description="Objective value after the merge")
    elapsed_seconds: float = Field(..., ge=0.0, description="Wall time of the iteration")


class ClusterStats(BaseModel):
    """
    Summary of a class induction run.

    Captures the corpus size, the objective before and after clustering and
    one ``IterationStats`` per completed iteration.
    """
    vocabulary_size: int = Field(..., ge=0, description="Number of distinct words")
    num_tokens: int = Field(..., ge=0, description="Number of corpus tokens")
    num_contexts: int = Field(..., ge=0, description="Number of distinct n-gram contexts")
    num_classes: int = Field(..., gt=0, description="Number of word classes")
    initial_objective: float = Field(..., description="Objective of the round-robin assignment")
    final_objective: float = Field(..., description="Objective after the last iteration")
    iterations: List[IterationStats] = Field(default_factory=list)
    total_seconds: float = Field(default=0.0, ge=0.0, description="Wall time of the clustering phase")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "vocabulary_size": 3,
                "num_tokens": 8,
                "num_contexts": 4,
                "num_classes": 2,
                "initial_objective": -5.2,
                "final_objective": -3.1,
                "iterations": [],
                "total_seconds": 0.01
            }
        }
    )

    @property
    def total_updates(self) -> int:
        return sum(it.num_updates for it in self.iterations)
