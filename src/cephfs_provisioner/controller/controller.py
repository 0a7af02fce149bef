#!/usr/bin/env python
# -*- encoding: utf-8 -*-
import datetime
import threading
import time
from typing import Dict, Any, Optional, Callable, Set

from apscheduler.schedulers.background import BaseScheduler, BackgroundScheduler

from cephfs_provisioner.constants import ANNOTATION_PROVISIONED_BY, ANNOTATION_STORAGE_CLASS_LEGACY, PV_NAME_PREFIX, \
    VOLUME_PHASE_RELEASED, RECLAIM_POLICY_DELETE, EVENT_TYPE_NORMAL, EVENT_TYPE_WARNING, \
    EVENT_REASON_PROVISIONING_SUCCEEDED, EVENT_REASON_PROVISIONING_FAILED, EVENT_REASON_VOLUME_FAILED_DELETE, \
    DEFAULT_PROVISIONER_NAME
from cephfs_provisioner.controller.interface import ProvisionerInterface, ClusterStateInterface
from cephfs_provisioner.exception import IgnoredError, MissingIdentityError, ValidationError, InputDataError, \
    InternalError
from cephfs_provisioner.jobexecutor import JobExecutor
from cephfs_provisioner.logging import logger
from cephfs_provisioner.repr import ReprMixIn
from cephfs_provisioner.utils import notify, key_get
from cephfs_provisioner.volume import VolumeRequest, VolumeDescriptor

PROCESS_NAME = 'cephfs-provisioner'

# Upper limit for the delay between two attempts when backing off
MAX_BACKOFF = 300

# Errors which won't go away by trying again
_PERMANENT_ERRORS = (MissingIdentityError, ValidationError, InputDataError)


class _FailureRecord:

    def __init__(self) -> None:
        self.failures = 0
        self.next_attempt = 0.0
        self.abandoned = False


class ProvisionController(ReprMixIn):

    def __init__(self,
                 *,
                 cluster: ClusterStateInterface,
                 provisioner: ProvisionerInterface,
                 provisioner_name: str = DEFAULT_PROVISIONER_NAME,
                 resync_period: float = 15,
                 exponential_backoff_on_error: bool = False,
                 failed_retry_threshold: int = 5,
                 workers: int = 4,
                 clock: Callable[[], float] = time.monotonic) -> None:
        if resync_period <= 0:
            raise InternalError('Resync period must be positive, got {}.'.format(resync_period))
        if failed_retry_threshold < 1:
            raise InternalError('Failed retry threshold must be at least one, got {}.'.format(failed_retry_threshold))
        if workers < 1:
            raise InternalError('Number of workers must be at least one, got {}.'.format(workers))

        self._cluster = cluster
        self._provisioner = provisioner
        self._provisioner_name = provisioner_name
        self._resync_period = resync_period
        self._exponential_backoff_on_error = exponential_backoff_on_error
        self._failed_retry_threshold = failed_retry_threshold
        self._clock = clock

        self._workers = workers

        self._lock = threading.Lock()
        self._in_flight: Set[str] = set()
        self._failures: Dict[str, _FailureRecord] = {}

        self._scheduler: Optional[BaseScheduler] = None
        self._stopped = threading.Event()

    @staticmethod
    def claim_key(claim: Dict[str, Any]) -> str:
        # A claim recreated under the same name is a different resource
        return 'claim:{}/{}/{}'.format(claim['metadata']['namespace'], claim['metadata']['name'],
                                        claim['metadata'].get('uid', None) or '')

    @staticmethod
    def volume_key(volume: Dict[str, Any]) -> str:
        return 'volume:{}'.format(volume['metadata']['name'])

    def failures(self, key: str) -> int:
        with self._lock:
            record = self._failures.get(key, None)
            return record.failures if record is not None else 0

    def abandoned(self, key: str) -> bool:
        with self._lock:
            record = self._failures.get(key, None)
            return record is not None and record.abandoned

    def _begin(self, key: str) -> bool:
        with self._lock:
            if key in self._in_flight:
                logger.debug('Operation on {} is still in progress, skipping.'.format(key))
                return False

            record = self._failures.get(key, None)
            if record is not None:
                if record.abandoned:
                    return False
                if record.next_attempt > self._clock():
                    logger.debug('Backing off from {} for another {:.1f} seconds.'.format(
                        key, record.next_attempt - self._clock()))
                    return False

            self._in_flight.add(key)
            return True

    def _end(self, key: str) -> None:
        with self._lock:
            self._in_flight.discard(key)

    def _record_success(self, key: str) -> None:
        with self._lock:
            self._failures.pop(key, None)

    def _record_failure(self, key: str, involved_object: Dict[str, Any], reason: str, message: str) -> None:
        with self._lock:
            record = self._failures.setdefault(key, _FailureRecord())
            record.failures += 1
            failures = record.failures
            if failures >= self._failed_retry_threshold:
                record.abandoned = True
            elif self._exponential_backoff_on_error:
                delay = min(self._resync_period * 2**(failures - 1), MAX_BACKOFF)
                record.next_attempt = self._clock() + delay

        if failures >= self._failed_retry_threshold:
            message = '{} Giving up after {} failures.'.format(message, failures)
            logger.error('Operation on {} failed: {}'.format(key, message))
        else:
            logger.warning('Operation on {} failed ({}/{}): {}'.format(key, failures, self._failed_retry_threshold,
                                                                       message))
        self._record_event(involved_object=involved_object, type=EVENT_TYPE_WARNING, reason=reason, message=message)

    def _abandon(self, key: str, involved_object: Dict[str, Any], reason: str, message: str) -> None:
        with self._lock:
            record = self._failures.setdefault(key, _FailureRecord())
            record.failures += 1
            record.abandoned = True

        message = '{} Not retrying.'.format(message)
        logger.error('Operation on {} failed permanently: {}'.format(key, message))
        self._record_event(involved_object=involved_object, type=EVENT_TYPE_WARNING, reason=reason, message=message)

    def _record_event(self, *, involved_object: Dict[str, Any], type: str, reason: str, message: str) -> None:
        # Events are informational, failing to record one must not fail the operation.
        try:
            self._cluster.record_event(involved_object=involved_object, type=type, reason=reason, message=message)
        except Exception as exception:
            logger.warning('Recording event {} for {} {} failed with a {} exception: {}'.format(
                reason, involved_object.get('kind', None), involved_object.get('name', None),
                exception.__class__.__name__, str(exception)))

    def _run(self, key: str, involved_object: Dict[str, Any], failure_reason: str, operation: Callable[[], None]) -> None:
        try:
            operation()
        except IgnoredError as exception:
            logger.info('Ignoring {}: {}'.format(key, str(exception)))
        except _PERMANENT_ERRORS as exception:
            self._abandon(key, involved_object, failure_reason, str(exception))
        except Exception as exception:
            self._record_failure(key, involved_object, failure_reason, '{}: {}'.format(
                type(exception).__name__, str(exception)))
        else:
            self._record_success(key)
        finally:
            self._end(key)

    @staticmethod
    def _claim_storage_class_name(claim: Dict[str, Any]) -> Optional[str]:
        storage_class_name = key_get(claim, 'spec.storageClassName', None)
        if not storage_class_name:
            annotations = key_get(claim, 'metadata.annotations', None) or {}
            storage_class_name = annotations.get(ANNOTATION_STORAGE_CLASS_LEGACY, None)
        return storage_class_name or None

    @staticmethod
    def _claim_object(claim: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'apiVersion': 'v1',
            'kind': 'PersistentVolumeClaim',
            'namespace': claim['metadata']['namespace'],
            'name': claim['metadata']['name'],
            'uid': claim['metadata'].get('uid', None),
        }

    @staticmethod
    def _volume_object(volume: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'apiVersion': 'v1',
            'kind': 'PersistentVolume',
            'name': volume['metadata']['name'],
            'uid': volume['metadata'].get('uid', None),
        }

    def _provision_claim(self, claim: Dict[str, Any]) -> None:
        claim_name = '{}/{}'.format(claim['metadata']['namespace'], claim['metadata']['name'])

        storage_class_name = self._claim_storage_class_name(claim)
        if storage_class_name is None:
            return
        storage_class = self._cluster.get_storage_class(storage_class_name)
        if storage_class is None:
            logger.debug('Storage class {} of claim {} does not exist.'.format(storage_class_name, claim_name))
            return
        if storage_class.get('provisioner', None) != self._provisioner_name:
            return

        uid = claim['metadata'].get('uid', None)
        if not uid:
            raise InputDataError('Claim {} has no uid.'.format(claim_name))
        pv_name = PV_NAME_PREFIX + uid
        if self._cluster.volume_exists(pv_name):
            logger.debug('Volume {} for claim {} exists already.'.format(pv_name, claim_name))
            return

        request = VolumeRequest.from_claim(pv_name=pv_name, claim=claim, storage_class=storage_class)
        logger.info('Provisioning volume {} for claim {}.'.format(pv_name, claim_name))
        descriptor = self._provisioner.provision(request)

        manifest = descriptor.to_manifest()
        manifest['metadata']['annotations'][ANNOTATION_PROVISIONED_BY] = self._provisioner_name
        manifest['spec']['claimRef'] = {
            'apiVersion': 'v1',
            'kind': 'PersistentVolumeClaim',
            'namespace': request.claim_ref.namespace,
            'name': request.claim_ref.name,
            'uid': request.claim_ref.uid,
        }
        manifest['spec']['storageClassName'] = storage_class_name

        try:
            self._cluster.create_volume(manifest)
        except FileExistsError:
            logger.info('Volume {} has been created concurrently, considering it done.'.format(pv_name))
        except Exception:
            logger.error('Persisting volume {} failed, removing its storage again.'.format(pv_name))
            try:
                self._provisioner.delete(descriptor, rollback=True)
            except Exception as exception:
                logger.error('Removing storage of volume {} failed with a {} exception: {}'.format(
                    pv_name, type(exception).__name__, str(exception)))
            raise
        else:
            logger.info('Volume {} for claim {} created.'.format(pv_name, claim_name))

        self._record_event(involved_object=self._claim_object(claim),
                           type=EVENT_TYPE_NORMAL,
                           reason=EVENT_REASON_PROVISIONING_SUCCEEDED,
                           message='Successfully provisioned volume {}.'.format(pv_name))

    def _delete_volume(self, volume: Dict[str, Any]) -> None:
        descriptor = VolumeDescriptor.from_manifest(volume)
        logger.info('Deleting volume {}.'.format(descriptor.name))
        self._provisioner.delete(descriptor)
        self._cluster.delete_volume(descriptor.name)
        logger.info('Volume {} deleted.'.format(descriptor.name))

    def _should_delete(self, volume: Dict[str, Any]) -> bool:
        annotations = key_get(volume, 'metadata.annotations', None) or {}
        return (key_get(volume, 'status.phase', None) == VOLUME_PHASE_RELEASED
                and key_get(volume, 'spec.persistentVolumeReclaimPolicy', None) == RECLAIM_POLICY_DELETE
                and annotations.get(ANNOTATION_PROVISIONED_BY, None) == self._provisioner_name)

    def _forget_unseen(self, seen_keys: Set[str]) -> None:
        with self._lock:
            stale_keys = [key for key in self._failures if key not in seen_keys]
            for key in stale_keys:
                del self._failures[key]
        if stale_keys:
            logger.debug('Forgot failure records of vanished resources: {}.'.format(', '.join(stale_keys)))

    def resync(self) -> None:
        notify(PROCESS_NAME, 'Resyncing')
        jobs = 0
        seen_keys: Set[str] = set()

        job_executor = JobExecutor(name='Controller', workers=self._workers)
        try:
            for claim in self._cluster.list_claims():
                if not key_get(claim, 'metadata.namespace', None) or not key_get(claim, 'metadata.name', None):
                    logger.warning('Ignoring claim without namespace or name.')
                    continue
                if key_get(claim, 'spec.volumeName', None):
                    continue
                key = self.claim_key(claim)
                seen_keys.add(key)
                if not self._begin(key):
                    continue
                job_executor.submit(lambda key=key, claim=claim: self._run(
                    key, self._claim_object(claim), EVENT_REASON_PROVISIONING_FAILED, lambda: self._provision_claim(claim)))
                jobs += 1

            for volume in self._cluster.list_volumes():
                if not key_get(volume, 'metadata.name', None) or not self._should_delete(volume):
                    continue
                key = self.volume_key(volume)
                seen_keys.add(key)
                if not self._begin(key):
                    continue
                job_executor.submit(lambda key=key, volume=volume: self._run(
                    key, self._volume_object(volume), EVENT_REASON_VOLUME_FAILED_DELETE, lambda: self._delete_volume(volume)))
                jobs += 1
        finally:
            # Jobs must not be cancelled, they release their resource keys when they finish.
            for result in job_executor.get_completed():
                if isinstance(result, Exception):
                    logger.error('Controller job failed with a {} exception: {}'.format(type(result).__name__, str(result)))
            job_executor.shutdown()

        # Only reached when both listings were complete
        self._forget_unseen(seen_keys)

        logger.debug('Resync finished, {} operations run.'.format(jobs))
        notify(PROCESS_NAME)

    def start(self) -> None:
        if self._scheduler is not None:
            raise InternalError('Controller has already been started.')

        job_defaults = {'coalesce': True, 'max_instances': 1, 'misfire_grace_time': 60}
        self._scheduler = BackgroundScheduler(job_defaults=job_defaults, timezone='UTC')
        self._scheduler.add_job(self.resync,
                                'interval',
                                seconds=self._resync_period,
                                id='resync',
                                next_run_time=datetime.datetime.now(datetime.timezone.utc))
        self._stopped.clear()
        self._scheduler.start()
        logger.info('Controller for provisioner {} started, resyncing every {} seconds.'.format(
            self._provisioner_name, self._resync_period))

    def stop(self) -> None:
        if self._stopped.is_set():
            return
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=True)
            self._scheduler = None
        self._stopped.set()
        logger.info('Controller for provisioner {} stopped.'.format(self._provisioner_name))

    def run(self) -> None:
        self.start()
        try:
            while not self._stopped.wait(timeout=1):
                pass
        finally:
            self.stop()
