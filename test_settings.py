import logging
import os
import unittest
from unittest import mock

from settings import ConfigError, load_api_url, load_settings, setup_logging


class TestLoadSettings(unittest.TestCase):

    def test_defaults(self):
        with mock.patch.dict(os.environ, {'MONGODB_URI': 'mongodb://db'}, clear=True):
            settings = load_settings(dotenv=False)
        self.assertEqual(settings.mongodb_uri, 'mongodb://db')
        self.assertIsNone(settings.client_url)
        self.assertEqual(settings.port, 5000)
        self.assertEqual(settings.db_name, 'taskmanager')
        self.assertEqual(settings.log_level, 'INFO')

    def test_from_environment(self):
        env = {
            'MONGODB_URI': 'mongodb://db',
            'CLIENT_URL': 'http://localhost:5173',
            'PORT': '8080',
            'MONGODB_DB_NAME': 'other',
            'LOG_LEVEL': 'debug',
        }
        with mock.patch.dict(os.environ, env, clear=True):
            settings = load_settings(dotenv=False)
        self.assertEqual(settings.client_url, 'http://localhost:5173')
        self.assertEqual(settings.port, 8080)
        self.assertEqual(settings.db_name, 'other')
        self.assertEqual(settings.log_level, 'DEBUG')

    def test_missing_uri(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ConfigError):
                load_settings(dotenv=False)

    def test_bad_port(self):
        with mock.patch.dict(os.environ, {'MONGODB_URI': 'x', 'PORT': 'http'}, clear=True):
            with self.assertRaises(ConfigError):
                load_settings(dotenv=False)

    def test_api_url(self):
        with mock.patch.dict(os.environ, {'TASKS_API_URL': 'http://h/api'}, clear=True):
            self.assertEqual(load_api_url(dotenv=False), 'http://h/api')


class TestSetupLogging(unittest.TestCase):

    def setUp(self):
        root = logging.getLogger()
        self.saved = (root.level, list(root.handlers))

    def tearDown(self):
        root = logging.getLogger()
        root.setLevel(self.saved[0])
        root.handlers[:] = self.saved[1]

    def test_single_handler_and_quiet_libraries(self):
        setup_logging('INFO')
        setup_logging('INFO')
        root = logging.getLogger()
        self.assertEqual(len(root.handlers), 1)
        self.assertEqual(root.level, logging.INFO)
        self.assertEqual(logging.getLogger('werkzeug').level, logging.WARNING)

    def test_unknown_level_falls_back_to_info(self):
        setup_logging('LOUD')
        self.assertEqual(logging.getLogger().level, logging.INFO)


if __name__ == '__main__':
    unittest.main()
