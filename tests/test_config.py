"""
Unit tests for zgraph.config module
"""
import json
import logging
import os
import shutil
import tempfile
import unittest
from pathlib import Path

import yaml

from zgraph.config import (
    apply_env_overrides,
    configure_logging,
    get_config_path,
    get_default_config,
    load_config,
    logger,
    merge_configs,
    read_structured_file,
)
from zgraph.exit_codes import ConfigError


class TestConfigManagement(unittest.TestCase):
    """Test configuration management functionality"""

    def setUp(self):
        """Set up test environment"""
        self.temp_dir = tempfile.mkdtemp()
        self.original_env = {k: v for k, v in os.environ.items() if k == 'HOME' or k.startswith('ZGRAPH_')}
        for key in list(os.environ):
            if key.startswith('ZGRAPH_'):
                del os.environ[key]
        os.environ['HOME'] = self.temp_dir
        self.original_level = logger.level

    def tearDown(self):
        """Clean up test environment"""
        for key in list(os.environ):
            if key == 'HOME' or key.startswith('ZGRAPH_'):
                del os.environ[key]
        os.environ.update(self.original_env)
        logger.setLevel(self.original_level)
        shutil.rmtree(self.temp_dir)

    def config_dir(self):
        path = Path(self.temp_dir) / '.zgraph'
        path.mkdir(exist_ok=True)
        return path

    def test_get_default_config(self):
        """Test default configuration structure"""
        config = get_default_config()
        self.assertIn('resolver', config)
        self.assertIn('discovery', config)
        self.assertIn('logging', config)
        self.assertEqual(config['resolver']['max_workers'], 4)
        self.assertIn('project.yaml', config['discovery']['project_files'])
        self.assertIn('.git', config['discovery']['skip_directories'])

    def test_load_config_no_file(self):
        """Test loading config when no file exists"""
        self.assertEqual(load_config(), get_default_config())

    def test_load_config_json_file(self):
        """Test loading config from JSON file"""
        with open(self.config_dir() / 'config.json', 'w') as f:
            json.dump({'resolver': {'max_workers': 2}, 'logging': {'level': 'DEBUG'}}, f)

        config = load_config()
        self.assertEqual(config['resolver']['max_workers'], 2)
        self.assertEqual(config['logging']['level'], 'DEBUG')
        # Untouched defaults survive the merge
        self.assertEqual(config['discovery'], get_default_config()['discovery'])

    def test_load_config_yaml_file(self):
        """Test loading config from YAML file"""
        with open(self.config_dir() / 'config.yaml', 'w') as f:
            yaml.safe_dump({'discovery': {'project_files': ['zproject.yaml']}}, f)

        config = load_config()
        self.assertEqual(config['discovery']['project_files'], ['zproject.yaml'])

    def test_load_config_toml_file(self):
        """Test loading config from TOML file"""
        (self.config_dir() / 'config.toml').write_text('[resolver]\nmax_workers = 1\n')
        self.assertEqual(load_config()['resolver']['max_workers'], 1)

    def test_config_env_variable(self):
        """Test ZGRAPH_CONFIG points at an explicit file"""
        path = Path(self.temp_dir) / 'custom.json'
        path.write_text(json.dumps({'resolver': {'max_workers': 7}}))
        os.environ['ZGRAPH_CONFIG'] = str(path)

        self.assertEqual(get_config_path(), path)
        self.assertEqual(load_config()['resolver']['max_workers'], 7)

    def test_invalid_config_raises(self):
        """Test a broken config file is reported, not ignored"""
        (self.config_dir() / 'config.json').write_text('{not json')
        with self.assertRaises(ConfigError):
            load_config()

    def test_non_mapping_config_raises(self):
        (self.config_dir() / 'config.json').write_text('[1, 2]')
        with self.assertRaises(ConfigError):
            load_config()

    def test_env_overrides(self):
        """Test ZGRAPH_SECTION_KEY overrides"""
        os.environ['ZGRAPH_RESOLVER_MAX_WORKERS'] = '8'
        os.environ['ZGRAPH_LOGGING_LEVEL'] = 'WARNING'
        config = apply_env_overrides(get_default_config())
        self.assertEqual(config['resolver']['max_workers'], 8)
        self.assertEqual(config['logging']['level'], 'WARNING')

    def test_env_override_unknown_key_is_ignored(self):
        os.environ['ZGRAPH_NOPE_VALUE'] = '1'
        self.assertEqual(apply_env_overrides(get_default_config()), get_default_config())

    def test_merge_configs(self):
        merged = merge_configs({'a': {'b': 1, 'c': 2}, 'd': 3}, {'a': {'b': 5}, 'e': 6})
        self.assertEqual(merged, {'a': {'b': 5, 'c': 2}, 'd': 3, 'e': 6})

    def test_configure_logging(self):
        config = get_default_config()
        config['logging']['level'] = 'debug'
        configure_logging(config)
        self.assertEqual(logger.level, logging.DEBUG)

    def test_configure_logging_unknown_level(self):
        config = get_default_config()
        config['logging']['level'] = 'LOUD'
        with self.assertRaises(ConfigError):
            configure_logging(config)

    def test_read_structured_file(self):
        path = Path(self.temp_dir) / 'data.yml'
        path.write_text('targets:\n  - name: lib\n')
        self.assertEqual(read_structured_file(path), {'targets': [{'name': 'lib'}]})


if __name__ == '__main__':
    unittest.main()
