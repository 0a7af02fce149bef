#!/usr/bin/env python
# -*- encoding: utf-8 -*-
import importlib
import threading
from typing import Dict, NamedTuple, Any

from cephfs_provisioner.config import Config, ConfigList
from cephfs_provisioner.exception import ConfigurationError, InternalError
from cephfs_provisioner.gateway.base import GatewayBase
from cephfs_provisioner.repr import ReprMixIn


class _GatewayFactoryModule(NamedTuple):
    module: Any
    arguments: Dict[str, Any]


class GatewayFactory(ReprMixIn):

    _modules: Dict[str, _GatewayFactoryModule] = {}
    _instances: Dict[str, GatewayBase] = {}
    _lock = threading.Lock()

    def __init__(self) -> None:
        raise InternalError('GatewayFactory constructor called.')

    @classmethod
    def _import_modules(cls, config: Config, modules: ConfigList) -> None:
        for index, module_dict in enumerate(modules):
            module = Config.get_from_dict(module_dict,
                                          'module',
                                          types=str,
                                          full_name_override=modules.full_name,
                                          index=index)
            name = Config.get_from_dict(module_dict,
                                        'name',
                                        types=str,
                                        full_name_override=modules.full_name,
                                        index=index)
            configuration = Config.get_from_dict(module_dict,
                                                 'configuration',
                                                 None,
                                                 types=(dict, type(None)),
                                                 full_name_override=modules.full_name,
                                                 index=index)

            if name in cls._modules:
                raise ConfigurationError('Duplicate name "{}" in list {}.'.format(name, modules.full_name))

            try:
                module = importlib.import_module('{}.{}'.format(__package__, module))
            except ImportError as exception:
                raise ConfigurationError('Module {} of gateway {} could not be loaded: {}'.format(
                    module, name, exception)) from exception
            try:
                configuration = config.validate(module=module.__name__, config=configuration)
            except ConfigurationError as exception:
                raise ConfigurationError('Configuration for gateway {} is invalid.'.format(name)) from exception
            cls._modules[name] = _GatewayFactoryModule(module=module,
                                                       arguments={
                                                           'config': config,
                                                           'name': name,
                                                           'module_configuration': configuration
                                                       })

    @classmethod
    def initialize(cls, config: Config) -> None:
        cls.close()
        cls._modules = {}
        gateways: ConfigList = config.get('gateways', types=list)
        cls._import_modules(config, gateways)

    @classmethod
    def close(cls) -> None:
        with cls._lock:
            for gateway in cls._instances.values():
                gateway.close()
            cls._instances = {}

    @classmethod
    def get_by_name(cls, name: str) -> GatewayBase:
        with cls._lock:
            if name not in cls._instances:
                if name not in cls._modules:
                    raise ConfigurationError('Gateway {} is undefined.'.format(name))

                module = cls._modules[name].module
                module_arguments = cls._modules[name].arguments
                cls._instances[name] = module.Gateway(**module_arguments)

            return cls._instances[name]

    @classmethod
    def get_modules(cls) -> Dict[str, _GatewayFactoryModule]:
        return cls._modules
