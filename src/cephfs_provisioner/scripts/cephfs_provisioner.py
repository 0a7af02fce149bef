#!/usr/bin/env python
# -*- encoding: utf-8 -*-
# PYTHON_ARGCOMPLETE_OK

import argparse
import os
import signal
import sys
from typing import NamedTuple, Type

import argcomplete

import cephfs_provisioner.exception
from cephfs_provisioner import __version__
from cephfs_provisioner.gateway.factory import GatewayFactory


class _ExceptionMapping(NamedTuple):
    exception: Type[BaseException]
    exit_code: int
    include_stacktrace: bool


def main():
    parser = argparse.ArgumentParser(formatter_class=argparse.ArgumentDefaultsHelpFormatter, allow_abbrev=False)

    parser.add_argument('-c', '--config-file', default=None, type=str, help='Specify a non-default configuration file')
    parser.add_argument('-m',
                        '--machine-output',
                        action='store_true',
                        default=False,
                        help='Enable machine-readable JSON output')
    parser.add_argument('--log-level',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        default='INFO',
                        help='Only log messages of this level or above on the console')
    parser.add_argument('--no-color',
                        action='store_true',
                        default=False,
                        help='Disable colorization of console logging')
    parser.add_argument('--kubeconfig',
                        default=None,
                        type=str,
                        help='Use this kubeconfig instead of the in-cluster configuration or $KUBECONFIG')
    parser.add_argument('--version', action='version', version='%(prog)s {}'.format(__version__))

    argcomplete.autocomplete(parser)
    args = parser.parse_args()

    from cephfs_provisioner.config import Config
    from cephfs_provisioner.logging import logger, init_logging
    if args.config_file is not None and args.config_file != '':
        try:
            cfg = open(args.config_file, 'r', encoding='utf-8').read()
        except FileNotFoundError:
            logger.error('File {} not found.'.format(args.config_file))
            sys.exit(os.EX_USAGE)
        config = Config(ad_hoc_config=cfg)
    else:
        config = Config()

    console_formatter = 'console-colored'
    if args.machine_output:
        console_formatter = 'json'
    elif args.no_color:
        console_formatter = 'console-plain'

    init_logging(logfile=config.get('logFile', types=(str, type(None))),
                 console_level=args.log_level,
                 console_formatter=console_formatter)

    # From most specific to least specific
    # yapf: disable
    exception_mappings = [
        _ExceptionMapping(exception=cephfs_provisioner.exception.UsageError, exit_code=os.EX_USAGE, include_stacktrace=False),
        _ExceptionMapping(exception=cephfs_provisioner.exception.InternalError, exit_code=os.EX_SOFTWARE, include_stacktrace=True),
        _ExceptionMapping(exception=cephfs_provisioner.exception.ConfigurationError, exit_code=os.EX_CONFIG, include_stacktrace=False),
        _ExceptionMapping(exception=cephfs_provisioner.exception.InputDataError, exit_code=os.EX_DATAERR, include_stacktrace=False),
        _ExceptionMapping(exception=PermissionError, exit_code=os.EX_NOPERM, include_stacktrace=False),
        _ExceptionMapping(exception=FileNotFoundError, exit_code=os.EX_NOINPUT, include_stacktrace=False),
        _ExceptionMapping(exception=IOError, exit_code=os.EX_IOERR, include_stacktrace=True),
        _ExceptionMapping(exception=OSError, exit_code=os.EX_OSERR, include_stacktrace=True),
        _ExceptionMapping(exception=ConnectionError, exit_code=os.EX_IOERR, include_stacktrace=True),
        _ExceptionMapping(exception=KeyboardInterrupt, exit_code=os.EX_OK, include_stacktrace=False),
        _ExceptionMapping(exception=BaseException, exit_code=os.EX_SOFTWARE, include_stacktrace=True),
    ]
    # yapf: enable

    try:
        run(config=config, kubeconfig=args.kubeconfig)
        sys.exit(os.EX_OK)
    except SystemExit:
        raise
    except BaseException as exception:
        for case in exception_mappings:
            if isinstance(exception, case.exception):
                message = str(exception)
                if message:
                    message = '{}: {}'.format(exception.__class__.__name__, message)
                else:
                    message = '{} exception occurred.'.format(exception.__class__.__name__)
                if case.include_stacktrace:
                    logger.error(message, exc_info=True)
                else:
                    logger.debug(message, exc_info=True)
                    logger.error(message)
                sys.exit(case.exit_code)
    finally:
        GatewayFactory.close()


def run(*, config, kubeconfig: str = None) -> None:
    from cephfs_provisioner.controller.controller import ProvisionController
    from cephfs_provisioner.controller.kubernetes import KubernetesClusterState
    from cephfs_provisioner.identity import ProvisionerIdentity
    from cephfs_provisioner.logging import logger, bind_provisioner_context
    from cephfs_provisioner.provisioner import CephFSProvisioner
    import cephfs_provisioner.metrics

    GatewayFactory.initialize(config)
    gateway = GatewayFactory.get_by_name(config.get('defaultGateway', types=str))

    provisioner_name = config.get('provisionerName', types=str)
    identity = ProvisionerIdentity.generate()
    bind_provisioner_context(identity=str(identity), provisioner_name=provisioner_name)
    logger.info('Provisioner identity is {}.'.format(identity))
    provisioner = CephFSProvisioner(identity=identity, gateway=gateway)

    prometheus_port = config.get('prometheusPort', None, types=(int, type(None)))
    if prometheus_port is not None:
        cephfs_provisioner.metrics.start_http_server(prometheus_port)

    controller = ProvisionController(cluster=KubernetesClusterState(kubeconfig=kubeconfig),
                                     provisioner=provisioner,
                                     provisioner_name=provisioner_name,
                                     resync_period=config.get('resyncPeriod', types=(int, float)),
                                     exponential_backoff_on_error=config.get('exponentialBackOffOnError', types=bool),
                                     failed_retry_threshold=config.get('failedRetryThreshold', types=int),
                                     workers=config.get('simultaneousOperations', types=int))

    signal.signal(signal.SIGTERM, lambda signum, frame: controller.stop())
    controller.run()


if __name__ == '__main__':
    main()
