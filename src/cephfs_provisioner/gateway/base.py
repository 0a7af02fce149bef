#!/usr/bin/env python
# -*- encoding: utf-8 -*-
import posixpath
from abc import ABCMeta, abstractmethod
from typing import Tuple

from cephfs_provisioner.config import Config, ConfigDict
from cephfs_provisioner.exception import ValidationError, InternalError
from cephfs_provisioner.logging import logger
from cephfs_provisioner.repr import ReprMixIn
from cephfs_provisioner.volume import SecretReference


class GatewayBase(ReprMixIn, metaclass=ABCMeta):
    """Namespace (directory) management on the distributed filesystem.

    Paths handed to and returned by a gateway are absolute paths inside the filesystem, i.e. ``/volumes/kubernetes/pvc-1``.
    ``create_namespace`` raises ``FileExistsError`` when the namespace is already present and ``remove_namespace``
    raises ``FileNotFoundError`` when it is absent. Everything else is reported as ``OSError``.
    """

    def __init__(self, *, config: Config, name: str, module_configuration: ConfigDict) -> None:
        self._name = name

        self._monitors = tuple(Config.get_from_dict(module_configuration, 'monitors', types=list))
        self._admin_id = Config.get_from_dict(module_configuration, 'adminId', types=str)
        self._secret_ref = SecretReference(name=Config.get_from_dict(module_configuration, 'adminSecretName', types=str),
                                           namespace=Config.get_from_dict(module_configuration,
                                                                          'adminSecretNamespace',
                                                                          types=str))
        self._root_path = posixpath.normpath(Config.get_from_dict(module_configuration, 'rootPath', types=str))
        self._directory_mode = Config.get_from_dict(module_configuration, 'directoryMode', types=int)

    @property
    def name(self) -> str:
        return self._name

    @property
    def monitors(self) -> Tuple[str, ...]:
        return self._monitors

    @property
    def admin_id(self) -> str:
        return self._admin_id

    @property
    def secret_ref(self) -> SecretReference:
        return self._secret_ref

    @property
    def root_path(self) -> str:
        return self._root_path

    def namespace_path(self, volume_name: str) -> str:
        if not isinstance(volume_name, str) or volume_name == '':
            raise ValidationError('Volume name must be a non-empty string.')
        if '/' in volume_name or '\0' in volume_name or volume_name in ('.', '..'):
            raise ValidationError('Volume name {} is not a valid path component.'.format(volume_name))

        return posixpath.join(self._root_path, volume_name)

    def _check_path(self, path: str) -> None:
        if posixpath.normpath(path) != path or posixpath.dirname(path) != self._root_path:
            raise InternalError('Path {} is not a namespace below {}.'.format(path, self._root_path))

    def create_namespace(self, path: str) -> None:
        self._check_path(path)
        logger.debug('Creating namespace {} on gateway {}.'.format(path, self._name))
        self._create_namespace(path)
        logger.info('Created namespace {} on gateway {}.'.format(path, self._name))

    def remove_namespace(self, path: str, recursive: bool = True) -> None:
        self._check_path(path)
        logger.debug('Removing namespace {} on gateway {} (recursive: {}).'.format(path, self._name, recursive))
        self._remove_namespace(path, recursive)
        logger.info('Removed namespace {} on gateway {}.'.format(path, self._name))

    def namespace_exists(self, path: str) -> bool:
        self._check_path(path)
        return self._namespace_exists(path)

    def close(self) -> None:
        pass

    @abstractmethod
    def _create_namespace(self, path: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def _remove_namespace(self, path: str, recursive: bool) -> None:
        raise NotImplementedError

    @abstractmethod
    def _namespace_exists(self, path: str) -> bool:
        raise NotImplementedError
