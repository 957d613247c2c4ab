"""
Cluster Lookup

Resolves a cluster identifier to the live cluster via DescribeDBClusters.
The outcome is a tagged result so "not found" can never be mistaken for an ARN.
"""

from dataclasses import dataclass
from typing import Optional
from typing import Union

from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError
from loguru import logger

from aurora_provisioner.errors import ClusterLookupError


@dataclass(frozen=True)
class Found:
    """Exactly one cluster matched."""

    arn: str
    activity_stream_status: Optional[str] = None


@dataclass(frozen=True)
class NotFound:
    """No cluster matched."""

    cluster_id: str

    def describe(self) -> str:
        return f"Cluster {self.cluster_id} not found"


@dataclass(frozen=True)
class Ambiguous:
    """More than one cluster matched."""

    cluster_id: str
    count: int

    def describe(self) -> str:
        return f"Multiple clusters found for {self.cluster_id} ({self.count})"


ClusterLookup = Union[Found, NotFound, Ambiguous]


def cluster_arn(region: str, account_id: str, cluster_id: str) -> str:
    """ARN of an RDS cluster."""
    return f"arn:aws:rds:{region}:{account_id}:cluster:{cluster_id}"


def lookup_cluster(rds_client: BaseClient, cluster_id: str) -> ClusterLookup:
    """
    Describe the cluster with the given identifier.

    Raises:
        ClusterLookupError: The describe call itself failed
    """
    try:
        response = rds_client.describe_db_clusters(Filters=[{"Name": "db-cluster-id", "Values": [cluster_id]}])
    except ClientError as err:
        # DescribeDBClusters with a filter returns an empty list for unknown ids,
        # but guard the explicit not-found code as well
        if err.response.get("Error", {}).get("Code") == "DBClusterNotFoundFault":
            return NotFound(cluster_id)
        raise ClusterLookupError(f"describe_db_clusters failed for {cluster_id}: {err}") from err
    except BotoCoreError as err:
        raise ClusterLookupError(f"describe_db_clusters failed for {cluster_id}: {err}") from err

    clusters = response.get("DBClusters") or []
    if not clusters:
        return NotFound(cluster_id)
    if len(clusters) > 1:
        return Ambiguous(cluster_id, len(clusters))

    cluster = clusters[0]
    arn = cluster.get("DBClusterArn")
    if not arn:
        # A cluster without an ARN is not usable as an identity
        logger.warning(f"Cluster {cluster_id} described without DBClusterArn")
        return NotFound(cluster_id)
    return Found(arn=arn, activity_stream_status=cluster.get("ActivityStreamStatus"))
