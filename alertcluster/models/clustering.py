"""
Clustering data models.

Defines DBSCAN parameters, clusters, engine results and the summaries
served by the cluster query layer.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DBSCANParams(BaseModel):
    """
    DBSCAN parameters over cosine distance.

    Two parameter sets are equal iff their serialized forms match; the
    serialized form is the result cache key.
    """

    model_config = ConfigDict(frozen=True)

    eps: float = Field(
        ...,
        gt=0.0,
        le=2.0,
        description="Maximum cosine distance (1 - similarity) between neighbours"
    )

    min_samples: int = Field(
        ...,
        ge=1,
        description="Minimum neighbourhood size, including the point itself, for a core point"
    )

    def cache_key(self) -> str:
        """Canonical serialization used as the cache key."""
        return self.model_dump_json()


class AlertCluster(BaseModel):
    """A density-connected group of alerts."""

    id: str = Field(..., min_length=1, description="Generated cluster identifier")

    center_alert_id: str = Field(
        ...,
        description="Member closest to the cluster centroid"
    )

    alert_ids: list[str] = Field(
        ...,
        min_length=1,
        description="Member alert identifiers"
    )

    size: int = Field(..., ge=1)

    keywords: list[str] = Field(
        default_factory=list,
        description="Representative terms extracted from member payloads"
    )

    @model_validator(mode="after")
    def validate_membership(self) -> "AlertCluster":
        if self.size != len(self.alert_ids):
            raise ValueError(
                f"size ({self.size}) must equal number of alert_ids ({len(self.alert_ids)})"
            )
        if self.center_alert_id not in self.alert_ids:
            raise ValueError(f"center_alert_id {self.center_alert_id} is not a cluster member")
        return self


class ClusteringResult(BaseModel):
    """Raw output of one clustering pass."""

    clusters: list[AlertCluster] = Field(default_factory=list)
    noise_alert_ids: list[str] = Field(default_factory=list)
    parameters: DBSCANParams


class ClusteringSummary(BaseModel):
    """
    Clustering result as served to callers.

    total_count is only meaningful on summaries returned by the query layer:
    number of clusters after filtering, before pagination.
    """

    clusters: list[AlertCluster] = Field(default_factory=list)
    noise_alert_ids: list[str] = Field(default_factory=list)
    parameters: DBSCANParams
    computed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    total_count: int = Field(default=0, ge=0)


class GetClustersParams(BaseModel):
    """Filtering and pagination options for cluster browsing."""

    min_cluster_size: int = Field(default=0, ge=0)

    limit: int = Field(
        default=0,
        ge=0,
        description="Maximum clusters to return (0 = no limit)"
    )

    offset: int = Field(default=0, ge=0)

    keyword: str = Field(default="", max_length=500)

    dbscan_params: Optional[DBSCANParams] = Field(
        default=None,
        description="Clustering parameters (service defaults when omitted)"
    )
