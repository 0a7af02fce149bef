#!/usr/bin/env python
# -*- encoding: utf-8 -*-
import posixpath
from typing import List, Tuple

# The cephfs module is part of the Ceph distribution packages (python3-cephfs), it is not available on PyPI.
import cephfs

from cephfs_provisioner.config import Config, ConfigDict
from cephfs_provisioner.exception import ConfigurationError
from cephfs_provisioner.gateway.base import GatewayBase
from cephfs_provisioner.logging import logger


class Gateway(GatewayBase):
    """Gateway talking to CephFS directly via libcephfs."""

    _repr_hidden = ('_fs', )

    def __init__(self, *, config: Config, name: str, module_configuration: ConfigDict) -> None:
        super().__init__(config=config, name=name, module_configuration=module_configuration)

        ceph_config_file = Config.get_from_dict(module_configuration, 'cephConfigFile', types=str)
        keyring_file = Config.get_from_dict(module_configuration, 'keyringFile', None, types=(str, type(None)))
        admin_key = Config.get_from_dict(module_configuration, 'adminKey', None, types=(str, type(None)))
        filesystem_name = Config.get_from_dict(module_configuration, 'filesystemName', None, types=(str, type(None)))

        ceph_conf = {'mon_host': ','.join(self.monitors)}
        if keyring_file is not None:
            ceph_conf['keyring'] = keyring_file
        if admin_key is not None:
            ceph_conf['key'] = admin_key

        try:
            self._fs = cephfs.LibCephFS(conffile=ceph_config_file, auth_id=self.admin_id, conf=ceph_conf)
            if filesystem_name is not None:
                self._fs.mount(filesystem_name=filesystem_name)
            else:
                self._fs.mount()
        except cephfs.Error as exception:
            raise ConfigurationError('Mounting CephFS for gateway {} failed: {}.'.format(name, exception)) from exception

        logger.debug('Mounted CephFS for gateway {} with monitors {} as {}.'.format(name, ', '.join(self.monitors),
                                                                                     self.admin_id))

    def _exists(self, path: str) -> bool:
        try:
            self._fs.stat(path)
        except cephfs.ObjectNotFound:
            return False
        return True

    def _create_namespace(self, path: str) -> None:
        parent = posixpath.dirname(path)
        try:
            if not self._exists(parent):
                try:
                    self._fs.mkdirs(parent, 0o755)
                except cephfs.ObjectExists:
                    # Somebody else was faster
                    pass

            try:
                self._fs.mkdir(path, self._directory_mode)
            except cephfs.ObjectExists:
                raise FileExistsError('Directory {} already exists.'.format(path)) from None
            # The mode passed to mkdir is subject to the umask
            self._fs.chmod(path, self._directory_mode)
        except cephfs.Error as exception:
            raise OSError('Creating directory {} failed: {}.'.format(path, exception)) from exception

    def _list_directory(self, path: str) -> List[Tuple[str, bool]]:
        entries = []
        directory_handle = self._fs.opendir(path)
        try:
            entry = self._fs.readdir(directory_handle)
            while entry:
                entry_name = entry.d_name.decode('utf-8') if isinstance(entry.d_name, bytes) else entry.d_name
                if entry_name not in ('.', '..'):
                    entries.append((entry_name, entry.is_dir()))
                entry = self._fs.readdir(directory_handle)
        finally:
            self._fs.closedir(directory_handle)

        return entries

    def _remove_tree(self, path: str) -> None:
        for entry_name, is_dir in self._list_directory(path):
            entry_path = posixpath.join(path, entry_name)
            if is_dir:
                self._remove_tree(entry_path)
            else:
                self._fs.unlink(entry_path)
        self._fs.rmdir(path)

    def _remove_namespace(self, path: str, recursive: bool) -> None:
        try:
            if not self._exists(path):
                raise FileNotFoundError('Directory {} not found.'.format(path))

            if recursive:
                self._remove_tree(path)
            else:
                self._fs.rmdir(path)
        except cephfs.ObjectNotFound as exception:
            # Something vanished underneath us, only report success when the whole tree is gone.
            if self._namespace_exists(path):
                raise OSError('Removing directory {} failed: {}.'.format(path, exception)) from exception
            raise FileNotFoundError('Directory {} not found.'.format(path)) from None
        except cephfs.Error as exception:
            raise OSError('Removing directory {} failed: {}.'.format(path, exception)) from exception

    def _namespace_exists(self, path: str) -> bool:
        try:
            return self._exists(path)
        except cephfs.Error as exception:
            raise OSError('Checking directory {} failed: {}.'.format(path, exception)) from exception

    def close(self) -> None:
        self._fs.shutdown()
