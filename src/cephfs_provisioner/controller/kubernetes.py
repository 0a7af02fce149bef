#!/usr/bin/env python
# -*- encoding: utf-8 -*-
import datetime
import os
import uuid
from typing import Dict, Any, List, Optional

import pykube
from pykube.objects import APIObject as pykube_APIObject

from cephfs_provisioner.constants import EVENT_REPORTING_COMPONENT
from cephfs_provisioner.controller.interface import ClusterStateInterface
from cephfs_provisioner.logging import logger
from cephfs_provisioner.repr import ReprMixIn

running_pod_name = os.getenv('POD_NAME', 'unknown-pod-name')

# Namespace for events concerning cluster scoped objects
EVENT_DEFAULT_NAMESPACE = 'default'


class StorageClass(pykube_APIObject):

    version = 'storage.k8s.io/v1'
    endpoint = 'storageclasses'
    kind = 'StorageClass'


class KubernetesClusterState(ClusterStateInterface, ReprMixIn):

    _repr_hidden = ('_api', )

    def __init__(self, *, kubeconfig: str = None, api: pykube.HTTPClient = None) -> None:
        if api is not None:
            self._api = api
        elif kubeconfig is not None:
            self._api = pykube.HTTPClient(pykube.KubeConfig.from_file(kubeconfig))
        else:
            self._api = pykube.HTTPClient(pykube.KubeConfig.from_env())

    def list_claims(self) -> List[Dict[str, Any]]:
        return [pvc.obj for pvc in pykube.PersistentVolumeClaim.objects(self._api, namespace=pykube.all)]

    def get_storage_class(self, name: str) -> Optional[Dict[str, Any]]:
        storage_class = StorageClass.objects(self._api).get_or_none(name=name)
        return storage_class.obj if storage_class is not None else None

    def volume_exists(self, name: str) -> bool:
        return pykube.PersistentVolume.objects(self._api).get_or_none(name=name) is not None

    def create_volume(self, manifest: Dict[str, Any]) -> None:
        try:
            pykube.PersistentVolume(self._api, manifest).create()
        except pykube.exceptions.HTTPError as exception:
            if exception.code == 409:
                raise FileExistsError('Persistent volume {} exists already.'.format(
                    manifest['metadata']['name'])) from exception
            raise

    def list_volumes(self) -> List[Dict[str, Any]]:
        return [pv.obj for pv in pykube.PersistentVolume.objects(self._api)]

    def delete_volume(self, name: str) -> None:
        try:
            pykube.PersistentVolume(self._api, {'metadata': {'name': name}}).delete()
        except pykube.exceptions.HTTPError as exception:
            if exception.code == 404:
                logger.warning('Tried to delete non-existing persistent volume {}.'.format(name))
            else:
                raise

    def record_event(self, *, involved_object: Dict[str, Any], type: str, reason: str, message: str) -> None:
        namespace = involved_object.get('namespace', None) or EVENT_DEFAULT_NAMESPACE
        event_name = '{}-{}'.format(EVENT_REPORTING_COMPONENT, str(uuid.uuid4()))
        # Kubernetes requires a time including microseconds
        event_time = datetime.datetime.now(datetime.timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ')

        # Setting uid is required so that kubectl describe finds the event.
        # And setting firstTimestamp is required so that kubectl shows a proper age for it.
        manifest = {
            'apiVersion': 'v1',
            'kind': 'Event',
            'metadata': {
                'name': event_name,
                'namespace': namespace,
            },
            'involvedObject': {k: v for k, v in involved_object.items() if v is not None},
            'eventTime': event_time,
            'firstTimestamp': event_time,
            'lastTimestamp': event_time,
            'type': type,
            'reason': reason,
            # Message can be at most 1024 characters long
            'message': message[:1024],
            'action': 'None',
            'reportingComponent': EVENT_REPORTING_COMPONENT,
            'reportingInstance': running_pod_name,
            'source': {
                'component': EVENT_REPORTING_COMPONENT
            }
        }

        pykube.Event(self._api, manifest).create()
