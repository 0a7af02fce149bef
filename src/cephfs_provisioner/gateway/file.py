#!/usr/bin/env python
# -*- encoding: utf-8 -*-
import os
import shutil

from cephfs_provisioner.config import Config, ConfigDict
from cephfs_provisioner.gateway.base import GatewayBase


class Gateway(GatewayBase):
    """Gateway for a CephFS which is mounted locally, ``mountPoint`` corresponds to ``/`` inside the filesystem."""

    def __init__(self, *, config: Config, name: str, module_configuration: ConfigDict):
        super().__init__(config=config, name=name, module_configuration=module_configuration)

        if os.sep != '/':
            raise RuntimeError('This module only works with / as a path separator.')

        self._mount_point = Config.get_from_dict(module_configuration, 'mountPoint', types=str)

    def _local_path(self, path: str) -> str:
        return os.path.join(self._mount_point, path.lstrip('/'))

    def _create_namespace(self, path: str) -> None:
        directory = self._local_path(path)

        os.makedirs(os.path.dirname(directory), exist_ok=True)
        # Raises FileExistsError
        os.mkdir(directory, self._directory_mode)
        # The mode passed to mkdir is subject to the umask
        os.chmod(directory, self._directory_mode)

    def _remove_namespace(self, path: str, recursive: bool) -> None:
        directory = self._local_path(path)

        if not os.path.lexists(directory):
            raise FileNotFoundError('Directory {} not found.'.format(directory))

        if recursive:
            shutil.rmtree(directory)
        else:
            os.rmdir(directory)

    def _namespace_exists(self, path: str) -> bool:
        return os.path.isdir(self._local_path(path))
