#!/usr/bin/env python
# -*- encoding: utf-8 -*-
from prometheus_client import CollectorRegistry, Counter, Histogram, start_http_server as prometheus_start_http_server

from cephfs_provisioner.logging import logger
from cephfs_provisioner.signals import signal_provision_post_success, signal_provision_post_error, \
    signal_delete_post_success, signal_delete_post_error, signal_delete_ignored

registry = CollectorRegistry()

# yapf: disable
provision_total = Counter('cephfs_provisioner_provision_total', documentation='Number of successfully provisioned volumes', registry=registry)
provision_failures_total = Counter('cephfs_provisioner_provision_failures_total', documentation='Number of failed provisioning attempts', registry=registry)
delete_total = Counter('cephfs_provisioner_delete_total', documentation='Number of successfully deleted volumes', registry=registry)
delete_failures_total = Counter('cephfs_provisioner_delete_failures_total', documentation='Number of failed delete attempts', registry=registry)
delete_ignored_total = Counter('cephfs_provisioner_delete_ignored_total', documentation='Number of delete requests for volumes owned by other instances', registry=registry)
rollback_total = Counter('cephfs_provisioner_rollback_total', documentation='Number of provisioned volumes removed again because they could not be persisted', registry=registry)
rollback_failures_total = Counter('cephfs_provisioner_rollback_failures_total', documentation='Number of failed removals of volumes which could not be persisted', registry=registry)
operation_duration_seconds = Histogram('cephfs_provisioner_operation_duration_seconds', labelnames=['operation'], documentation='Duration of storage operations (seconds)', registry=registry)
# yapf: enable


@signal_provision_post_success.connect
def _provision_post_success(sender, **kwargs) -> None:
    provision_total.inc()
    operation_duration_seconds.labels(operation='provision').observe(kwargs['duration'])


@signal_provision_post_error.connect
def _provision_post_error(sender, **kwargs) -> None:
    provision_failures_total.inc()
    operation_duration_seconds.labels(operation='provision').observe(kwargs['duration'])


@signal_delete_post_success.connect
def _delete_post_success(sender, **kwargs) -> None:
    if kwargs.get('rollback', False):
        rollback_total.inc()
        operation_duration_seconds.labels(operation='rollback').observe(kwargs['duration'])
    else:
        delete_total.inc()
        operation_duration_seconds.labels(operation='delete').observe(kwargs['duration'])


@signal_delete_post_error.connect
def _delete_post_error(sender, **kwargs) -> None:
    if kwargs.get('rollback', False):
        rollback_failures_total.inc()
        operation_duration_seconds.labels(operation='rollback').observe(kwargs['duration'])
    else:
        delete_failures_total.inc()
        operation_duration_seconds.labels(operation='delete').observe(kwargs['duration'])


@signal_delete_ignored.connect
def _delete_ignored(sender, **kwargs) -> None:
    delete_ignored_total.inc()


def start_http_server(port: int, address: str = '') -> None:
    logger.info('Serving Prometheus metrics on port {}.'.format(port))
    prometheus_start_http_server(port, addr=address, registry=registry)
