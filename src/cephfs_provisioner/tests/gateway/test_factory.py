from unittest import TestCase

from cephfs_provisioner.config import Config
from cephfs_provisioner.exception import ConfigurationError, InternalError
from cephfs_provisioner.gateway.factory import GatewayFactory
from cephfs_provisioner.tests.testcase import TestCaseBase


class GatewayFactoryTestCase(TestCaseBase, TestCase):

    CONFIG = """
        configurationVersion: '1'
        defaultGateway: gateway-1
        gateways:
          - name: gateway-1
            module: file
            configuration:
              monitors:
                - 10.0.0.1:6789
              adminSecretName: ceph-secret-admin
              mountPoint: {testpath}/mnt
          - name: gateway-2
            module: file
            configuration:
              monitors:
                - 10.0.0.2:6789
              adminSecretName: ceph-secret-admin
              rootPath: /other
              mountPoint: {testpath}/mnt
        """

    CONFIG_DUPLICATE = """
        configurationVersion: '1'
        defaultGateway: gateway-1
        gateways:
          - name: gateway-1
            module: file
            configuration:
              monitors:
                - 10.0.0.1:6789
              adminSecretName: ceph-secret-admin
              mountPoint: /mnt
          - name: gateway-1
            module: file
            configuration:
              monitors:
                - 10.0.0.1:6789
              adminSecretName: ceph-secret-admin
              mountPoint: /mnt
        """

    CONFIG_UNKNOWN_MODULE = """
        configurationVersion: '1'
        defaultGateway: gateway-1
        gateways:
          - name: gateway-1
            module: nonexistent
            configuration:
              monitors:
                - 10.0.0.1:6789
              adminSecretName: ceph-secret-admin
        """

    CONFIG_INVALID_MODULE_CONFIGURATION = """
        configurationVersion: '1'
        defaultGateway: gateway-1
        gateways:
          - name: gateway-1
            module: file
            configuration:
              monitors:
                - 10.0.0.1:6789
              adminSecretName: ceph-secret-admin
        """

    def tearDown(self):
        GatewayFactory.close()
        super().tearDown()

    def test_get_by_name(self):
        GatewayFactory.initialize(self.config)
        gateway_1 = GatewayFactory.get_by_name('gateway-1')
        gateway_2 = GatewayFactory.get_by_name('gateway-2')
        self.assertEqual('gateway-1', gateway_1.name)
        self.assertEqual('/volumes/kubernetes', gateway_1.root_path)
        self.assertEqual('gateway-2', gateway_2.name)
        self.assertEqual('/other', gateway_2.root_path)
        self.assertIs(gateway_1, GatewayFactory.get_by_name('gateway-1'))
        self.assertEqual({'gateway-1', 'gateway-2'}, set(GatewayFactory.get_modules().keys()))

    def test_undefined(self):
        GatewayFactory.initialize(self.config)
        self.assertRaises(ConfigurationError, lambda: GatewayFactory.get_by_name('gateway-3'))

    def test_duplicate(self):
        config = Config(ad_hoc_config=self.CONFIG_DUPLICATE)
        self.assertRaises(ConfigurationError, lambda: GatewayFactory.initialize(config))

    def test_unknown_module(self):
        config = Config(ad_hoc_config=self.CONFIG_UNKNOWN_MODULE)
        self.assertRaises(ConfigurationError, lambda: GatewayFactory.initialize(config))

    def test_invalid_module_configuration(self):
        config = Config(ad_hoc_config=self.CONFIG_INVALID_MODULE_CONFIGURATION)
        self.assertRaises(ConfigurationError, lambda: GatewayFactory.initialize(config))

    def test_no_instances(self):
        self.assertRaises(InternalError, lambda: GatewayFactory())
