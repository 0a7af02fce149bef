#!/usr/bin/env python
# -*- encoding: utf-8 -*-
import time

from cephfs_provisioner.constants import ANNOTATION_PROVISIONER_IDENTITY, ACCESS_MODES, RECLAIM_POLICIES, \
    RESOURCE_STORAGE
from cephfs_provisioner.controller.interface import ProvisionerInterface
from cephfs_provisioner.exception import ValidationError, AllocationError, ReclaimError, MissingIdentityError, \
    IgnoredError
from cephfs_provisioner.gateway.base import GatewayBase
from cephfs_provisioner.identity import ProvisionerIdentity
from cephfs_provisioner.logging import logger
from cephfs_provisioner.repr import ReprMixIn
from cephfs_provisioner.signals import SIGNAL_SENDER, signal_provision_pre, signal_provision_post_success, \
    signal_provision_post_error, signal_delete_pre, signal_delete_post_success, signal_delete_post_error, \
    signal_delete_ignored
from cephfs_provisioner.volume import VolumeRequest, VolumeDescriptor, BackendLocation, is_quantity


class VolumeAllocator(ReprMixIn):

    def __init__(self, *, identity: ProvisionerIdentity, gateway: GatewayBase) -> None:
        self._identity = identity
        self._gateway = gateway

    def _validate(self, request: VolumeRequest) -> str:
        path = self._gateway.namespace_path(request.pv_name)

        capacity = request.capacity
        if capacity is None or capacity == '':
            raise ValidationError('Request for volume {} is missing resource request {}.'.format(
                request.pv_name, RESOURCE_STORAGE))
        if not is_quantity(capacity):
            raise ValidationError('Request for volume {} has an invalid capacity of {}.'.format(
                request.pv_name, capacity))

        if not request.access_modes:
            raise ValidationError('Request for volume {} has no access modes.'.format(request.pv_name))
        for access_mode in request.access_modes:
            if access_mode not in ACCESS_MODES:
                raise ValidationError('Request for volume {} has an invalid access mode {}.'.format(
                    request.pv_name, access_mode))

        if request.reclaim_policy not in RECLAIM_POLICIES:
            raise ValidationError('Request for volume {} has an invalid reclaim policy {}.'.format(
                request.pv_name, request.reclaim_policy))

        return path

    def provision(self, request: VolumeRequest) -> VolumeDescriptor:
        path = self._validate(request)

        signal_provision_pre.send(SIGNAL_SENDER, volume=request.pv_name)
        t1 = time.monotonic()
        try:
            try:
                self._gateway.create_namespace(path)
            except FileExistsError:
                # Left over from an earlier attempt for the same volume which failed later on
                logger.warning('Namespace {} exists already, reusing it for volume {}.'.format(path, request.pv_name))
        except OSError as exception:
            signal_provision_post_error.send(SIGNAL_SENDER,
                                             volume=request.pv_name,
                                             duration=time.monotonic() - t1,
                                             exception=exception)
            raise AllocationError('Creating namespace {} for volume {} failed: {}'.format(
                path, request.pv_name, exception)) from exception

        # Capacity is recorded but not enforced, there is no quota on the namespace.
        descriptor = VolumeDescriptor(name=request.pv_name,
                                      annotations={ANNOTATION_PROVISIONER_IDENTITY: self._identity.value},
                                      capacity=request.capacity,
                                      access_modes=request.access_modes,
                                      reclaim_policy=request.reclaim_policy,
                                      backend=BackendLocation(monitors=self._gateway.monitors,
                                                              path=path,
                                                              user=self._gateway.admin_id,
                                                              secret_ref=self._gateway.secret_ref))

        signal_provision_post_success.send(SIGNAL_SENDER, volume=request.pv_name, duration=time.monotonic() - t1)
        logger.info('Provisioned volume {} at {} with a capacity of {}.'.format(request.pv_name, path,
                                                                               request.capacity))
        return descriptor


class VolumeReclaimer(ReprMixIn):

    def __init__(self, *, identity: ProvisionerIdentity, gateway: GatewayBase) -> None:
        self._identity = identity
        self._gateway = gateway

    def delete(self, descriptor: VolumeDescriptor, *, rollback: bool = False) -> None:
        identity = descriptor.identity
        if identity is None:
            raise MissingIdentityError('Identity annotation {} not found on volume {}.'.format(
                ANNOTATION_PROVISIONER_IDENTITY, descriptor.name))
        if not self._identity.matches(identity):
            signal_delete_ignored.send(SIGNAL_SENDER, volume=descriptor.name, rollback=rollback)
            raise IgnoredError('Identity annotation on volume {} does not match ours.'.format(descriptor.name))

        path = self._gateway.namespace_path(descriptor.name)

        signal_delete_pre.send(SIGNAL_SENDER, volume=descriptor.name, rollback=rollback)
        t1 = time.monotonic()
        try:
            self._gateway.remove_namespace(path, recursive=True)
        except FileNotFoundError:
            logger.info('Namespace {} of volume {} is already gone.'.format(path, descriptor.name))
        except OSError as exception:
            signal_delete_post_error.send(SIGNAL_SENDER,
                                          volume=descriptor.name,
                                          rollback=rollback,
                                          duration=time.monotonic() - t1,
                                          exception=exception)
            raise ReclaimError('Removing namespace {} of volume {} failed: {}'.format(
                path, descriptor.name, exception)) from exception

        signal_delete_post_success.send(SIGNAL_SENDER,
                                        volume=descriptor.name,
                                        rollback=rollback,
                                        duration=time.monotonic() - t1)
        logger.info('Reclaimed volume {}, namespace {} removed.'.format(descriptor.name, path))


class CephFSProvisioner(ProvisionerInterface, ReprMixIn):

    def __init__(self, *, identity: ProvisionerIdentity, gateway: GatewayBase) -> None:
        self._identity = identity
        self._allocator = VolumeAllocator(identity=identity, gateway=gateway)
        self._reclaimer = VolumeReclaimer(identity=identity, gateway=gateway)

    @property
    def identity(self) -> ProvisionerIdentity:
        return self._identity

    def provision(self, request: VolumeRequest) -> VolumeDescriptor:
        return self._allocator.provision(request)

    def delete(self, descriptor: VolumeDescriptor, *, rollback: bool = False) -> None:
        self._reclaimer.delete(descriptor, rollback=rollback)
