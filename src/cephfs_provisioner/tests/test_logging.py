import json
import logging
import os
import shutil
import tempfile
from unittest import TestCase

from cephfs_provisioner.exception import UsageError
from cephfs_provisioner.logging import logger, init_logging, bind_provisioner_context, unbind_provisioner_context, \
    _sl_processor_add_provisioner_context, NO_CONTEXT


class LoggingTestCase(TestCase):

    def setUp(self):
        self.path = tempfile.mkdtemp(prefix='cephfs-provisioner-test_')
        self.logfile = os.path.join(self.path, 'cephfs-provisioner.log')

    def tearDown(self):
        unbind_provisioner_context()
        # Closes the log file handler
        init_logging(console_formatter='console-plain')
        shutil.rmtree(self.path)

    def _read_logfile(self):
        init_logging(console_formatter='console-plain')
        with open(self.logfile, 'r', encoding='utf-8') as f:
            return f.read()

    def test_context_unbound(self):
        event_dict = _sl_processor_add_provisioner_context(None, None, {'event': 'Resyncing'})
        self.assertEqual(NO_CONTEXT, event_dict['identity'])
        self.assertEqual(NO_CONTEXT, event_dict['provisioner'])

    def test_context_bound(self):
        bind_provisioner_context(identity='I1', provisioner_name='kubernetes.io/cephfs')
        event_dict = _sl_processor_add_provisioner_context(None, None, {'event': 'Resyncing'})
        self.assertEqual('I1', event_dict['identity'])
        self.assertEqual('kubernetes.io/cephfs', event_dict['provisioner'])

        unbind_provisioner_context()
        event_dict = _sl_processor_add_provisioner_context(None, None, {'event': 'Resyncing'})
        self.assertEqual(NO_CONTEXT, event_dict['identity'])

    def test_context_does_not_override_event(self):
        bind_provisioner_context(identity='I1', provisioner_name='kubernetes.io/cephfs')
        event_dict = _sl_processor_add_provisioner_context(None, None, {'event': 'Deleting', 'identity': 'I2'})
        self.assertEqual('I2', event_dict['identity'])

    def test_logfile(self):
        init_logging(logfile=self.logfile, console_level=logging.WARN, console_formatter='console-plain')
        bind_provisioner_context(identity='I1', provisioner_name='kubernetes.io/cephfs')
        logger.info('Provisioned volume pvc-abc123.')

        content = self._read_logfile()
        self.assertIn('Provisioned volume pvc-abc123.', content)
        self.assertIn('[kubernetes.io/cephfs I1]', content)
        self.assertIn('INFO', content)
        self.assertIn('test_logging.py', content)

    def test_logfile_json(self):
        init_logging(logfile=self.logfile, console_formatter='console-plain', logfile_formatter='json')
        bind_provisioner_context(identity='I1', provisioner_name='kubernetes.io/cephfs')
        logger.warning('Removing namespace failed.')
        logging.getLogger('pykube').warning('Foreign event.')

        events = [json.loads(line) for line in self._read_logfile().splitlines() if line]
        own_event = [event for event in events if event['event'] == 'Removing namespace failed.'][0]
        self.assertEqual('warning', own_event['level'])
        self.assertEqual('I1', own_event['identity'])
        self.assertEqual('kubernetes.io/cephfs', own_event['provisioner'])
        self.assertEqual('test_logging.py', own_event['filename'])
        self.assertEqual('test_logfile_json', own_event['func_name'])

        foreign_event = [event for event in events if event['event'] == 'Foreign event.'][0]
        self.assertEqual('I1', foreign_event['identity'])

    def test_unknown_formatter(self):
        self.assertRaises(UsageError, lambda: init_logging(console_formatter='legacy'))
        self.assertRaises(UsageError, lambda: init_logging(logfile=self.logfile, logfile_formatter='xml'))
