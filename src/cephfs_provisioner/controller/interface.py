from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional

from cephfs_provisioner.volume import VolumeRequest, VolumeDescriptor


class ProvisionerInterface(ABC):

    @abstractmethod
    def provision(self, request: VolumeRequest) -> VolumeDescriptor:
        """Creates the storage asset and returns a descriptor representing it.

        Must not return a descriptor when the storage asset could not be created.
        """
        raise NotImplementedError

    @abstractmethod
    def delete(self, descriptor: VolumeDescriptor, *, rollback: bool = False) -> None:
        """Removes the storage asset represented by the descriptor.

        Raises IgnoredError when the volume does not belong to this provisioner instance. rollback is set when
        a freshly provisioned asset is removed again because its volume could not be persisted.
        """
        raise NotImplementedError


class ClusterStateInterface(ABC):
    """Access to the cluster state the controller reconciles. Objects are passed around as manifests (dictionaries)."""

    @abstractmethod
    def list_claims(self) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def get_storage_class(self, name: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def volume_exists(self, name: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def create_volume(self, manifest: Dict[str, Any]) -> None:
        """Persists a volume. Raises FileExistsError when a volume with the same name exists already."""
        raise NotImplementedError

    @abstractmethod
    def list_volumes(self) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def delete_volume(self, name: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def record_event(self, *, involved_object: Dict[str, Any], type: str, reason: str, message: str) -> None:
        raise NotImplementedError
