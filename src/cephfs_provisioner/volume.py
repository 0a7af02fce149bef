#!/usr/bin/env python
# -*- encoding: utf-8 -*-
import re
from typing import NamedTuple, Dict, Any, Tuple, Optional, Sequence

from cephfs_provisioner.constants import ANNOTATION_PROVISIONER_IDENTITY, RESOURCE_STORAGE, RECLAIM_POLICY_DELETE
from cephfs_provisioner.exception import InputDataError
from cephfs_provisioner.repr import ReprMixIn
from cephfs_provisioner.utils import keys_exist, key_get

# Kubernetes resource quantity without a sign, e.g. 5Gi, 500M, 1.5e9
_QUANTITY_REGEX = re.compile(r'^\+?(?:\d+(?:\.\d*)?|\.\d+)(?:[KMGTPE]i|[numkMGTPE]|[eE][+-]?\d+)?$')


def is_quantity(value: Any) -> bool:
    return isinstance(value, str) and _QUANTITY_REGEX.match(value) is not None


class ClaimReference(NamedTuple):
    namespace: str
    name: str
    uid: str


class SecretReference(NamedTuple):
    name: str
    namespace: str


class BackendLocation(NamedTuple):
    monitors: Tuple[str, ...]
    path: str
    user: str
    secret_ref: SecretReference


class VolumeRequest(NamedTuple):
    pv_name: str
    reclaim_policy: str
    access_modes: Tuple[str, ...]
    requests: Dict[str, str]
    claim_ref: Optional[ClaimReference] = None
    parameters: Optional[Dict[str, str]] = None

    @property
    def capacity(self) -> Optional[str]:
        return (self.requests or {}).get(RESOURCE_STORAGE, None)

    @classmethod
    def from_claim(cls, *, pv_name: str, claim: Dict[str, Any], storage_class: Dict[str, Any]) -> 'VolumeRequest':
        if not keys_exist(claim, ('metadata.name', 'metadata.namespace', 'metadata.uid')):
            raise InputDataError('Claim is missing required metadata.')

        metadata = claim['metadata']
        return cls(pv_name=pv_name,
                   reclaim_policy=storage_class.get('reclaimPolicy', None) or RECLAIM_POLICY_DELETE,
                   access_modes=tuple(key_get(claim, 'spec.accessModes', None) or ()),
                   requests=dict(key_get(claim, 'spec.resources.requests', None) or {}),
                   claim_ref=ClaimReference(namespace=metadata['namespace'], name=metadata['name'], uid=metadata['uid']),
                   parameters=dict(storage_class.get('parameters', None) or {}))


class VolumeDescriptor(ReprMixIn):
    """Portable record of a provisioned volume.

    It is persisted into the cluster state as a PersistentVolume manifest, see :meth:`to_manifest` and
    :meth:`from_manifest`.
    """

    def __init__(self,
                 *,
                 name: str,
                 annotations: Dict[str, str],
                 capacity: Optional[str],
                 access_modes: Sequence[str],
                 reclaim_policy: Optional[str],
                 backend: Optional[BackendLocation] = None) -> None:
        self.name = name
        self.annotations = dict(annotations)
        self.capacity = capacity
        self.access_modes = tuple(access_modes)
        self.reclaim_policy = reclaim_policy
        self.backend = backend

    @property
    def identity(self) -> Optional[str]:
        return self.annotations.get(ANNOTATION_PROVISIONER_IDENTITY, None)

    def to_manifest(self) -> Dict[str, Any]:
        spec: Dict[str, Any] = {
            'accessModes': list(self.access_modes),
            'persistentVolumeReclaimPolicy': self.reclaim_policy,
        }
        if self.capacity is not None:
            spec['capacity'] = {RESOURCE_STORAGE: self.capacity}
        if self.backend is not None:
            spec['cephfs'] = {
                'monitors': list(self.backend.monitors),
                'path': self.backend.path,
                'user': self.backend.user,
                'secretRef': {
                    'name': self.backend.secret_ref.name,
                    'namespace': self.backend.secret_ref.namespace,
                },
            }

        return {
            'apiVersion': 'v1',
            'kind': 'PersistentVolume',
            'metadata': {
                'name': self.name,
                'annotations': dict(self.annotations),
            },
            'spec': spec,
        }

    @classmethod
    def from_manifest(cls, manifest: Dict[str, Any]) -> 'VolumeDescriptor':
        if not keys_exist(manifest, ('metadata.name', )) or not manifest['metadata']['name']:
            raise InputDataError('Volume manifest has no name.')

        backend = None
        if keys_exist(manifest, ('spec.cephfs.monitors', 'spec.cephfs.path')):
            cephfs = manifest['spec']['cephfs']
            secret_ref = cephfs.get('secretRef', None) or {}
            backend = BackendLocation(monitors=tuple(cephfs['monitors']),
                                      path=cephfs['path'],
                                      user=cephfs.get('user', None),
                                      secret_ref=SecretReference(name=secret_ref.get('name', None),
                                                                 namespace=secret_ref.get('namespace', None)))

        return cls(name=manifest['metadata']['name'],
                   annotations=key_get(manifest, 'metadata.annotations', None) or {},
                   capacity=key_get(manifest, 'spec.capacity.' + RESOURCE_STORAGE, None),
                   access_modes=key_get(manifest, 'spec.accessModes', None) or (),
                   reclaim_policy=key_get(manifest, 'spec.persistentVolumeReclaimPolicy', None),
                   backend=backend)
