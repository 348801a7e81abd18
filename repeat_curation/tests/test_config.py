#!/usr/bin/env python3

"""
Unit tests for configuration management.

Tests the configuration loading, validation, environment variable handling
and the round trip through the project log header.
"""

import unittest
import tempfile
import os
import json
import sys

import yaml

# Add the parent directory to the path to import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from repeat_curation.core.config import CurationConfig, load_config
from repeat_curation.core.exceptions import ConfigurationError


class TestCurationConfig(unittest.TestCase):
    """Test CurationConfig class."""

    def test_default_config(self):
        """Test default configuration values."""
        config = CurationConfig()

        self.assertIsNone(config.seq_file)
        self.assertIsNone(config.fold_dir)
        self.assertEqual(config.line_width, 50)
        self.assertEqual(config.memory_limit_mb, 4096)
        self.assertFalse(config.verbose)

    def test_config_validation(self):
        """Test configuration validation."""
        config = CurationConfig()
        config.validate()  # Should not raise

        with self.assertRaises(ConfigurationError):
            CurationConfig(line_width=0)

        with self.assertRaises(ConfigurationError):
            CurationConfig(memory_limit_mb=50)

    def test_validate_for_new_project(self):
        """Test that a new project needs input, outputs and a log."""
        config = CurationConfig(seq_file="in.fa", out_file="out.fa", exclude_file="ex.fa")

        with self.assertRaises(ConfigurationError) as context:
            config.validate_for_new_project()
        self.assertIn("log_file", str(context.exception))

        config.log_file = "project.log"
        config.validate_for_new_project()  # Should not raise

    def test_config_from_dict(self):
        """Test creating config from dictionary."""
        config_dict = {
            "seq_file": "consensi.fa",
            "line_width": 60,
            "verbose": True,
            "unknown_key": "ignored"  # Should be filtered out
        }

        config = CurationConfig.from_dict(config_dict)

        self.assertEqual(config.seq_file, "consensi.fa")
        self.assertEqual(config.line_width, 60)
        self.assertTrue(config.verbose)
        self.assertFalse(hasattr(config, "unknown_key"))

    def test_config_from_json_file(self):
        """Test loading config from JSON file."""
        config_data = {
            "seq_file": "consensi.fa",
            "self_file": "self.out",
            "memory_limit_mb": 2048
        }

        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            json.dump(config_data, f)
            config_path = f.name

        try:
            config = CurationConfig.from_file(config_path)

            self.assertEqual(config.seq_file, "consensi.fa")
            self.assertEqual(config.self_file, "self.out")
            self.assertEqual(config.memory_limit_mb, 2048)
            # Default for unspecified
            self.assertEqual(config.line_width, 50)
        finally:
            os.unlink(config_path)

    def test_config_from_yaml_file(self):
        """Test loading config from YAML file."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            yaml.safe_dump({"align_file": "align.out", "line_width": 70}, f)
            config_path = f.name

        try:
            config = CurationConfig.from_file(config_path)
            self.assertEqual(config.align_file, "align.out")
            self.assertEqual(config.line_width, 70)
        finally:
            os.unlink(config_path)

    def test_config_from_nonexistent_file(self):
        """Test error handling for nonexistent config file."""
        with self.assertRaises(ConfigurationError):
            CurationConfig.from_file("/nonexistent/config.json")

    def test_config_from_invalid_json(self):
        """Test error handling for invalid JSON."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            f.write("{ invalid json }")
            config_path = f.name

        try:
            with self.assertRaises(ConfigurationError):
                CurationConfig.from_file(config_path)
        finally:
            os.unlink(config_path)

    def test_config_from_non_mapping_yaml(self):
        """Test that a YAML list is rejected."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yml', delete=False) as f:
            f.write("- seq_file\n- out_file\n")
            config_path = f.name

        try:
            with self.assertRaises(ConfigurationError):
                CurationConfig.from_file(config_path)
        finally:
            os.unlink(config_path)

    def test_config_save_to_file(self):
        """Test saving config to file."""
        config = CurationConfig(seq_file="consensi.fa", verbose=True)

        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            config_path = f.name

        try:
            config.save_to_file(config_path)

            loaded_config = CurationConfig.from_file(config_path)
            self.assertEqual(loaded_config.seq_file, "consensi.fa")
            self.assertTrue(loaded_config.verbose)
        finally:
            if os.path.exists(config_path):
                os.unlink(config_path)

    def test_config_from_env(self):
        """Test loading config from environment variables."""
        env_vars = {
            'REPEAT_CURATION_SEQ_FILE': 'env.fa',
            'REPEAT_CURATION_LINE_WIDTH': '80',
            'REPEAT_CURATION_VERBOSE': 'yes',
        }

        original_env = {}
        for key in env_vars:
            original_env[key] = os.environ.get(key)
            os.environ[key] = env_vars[key]

        try:
            config = CurationConfig.from_env()

            self.assertEqual(config.seq_file, 'env.fa')
            self.assertEqual(config.line_width, 80)
            self.assertTrue(config.verbose)
            # Default for unspecified
            self.assertEqual(config.memory_limit_mb, 4096)
        finally:
            for key, value in original_env.items():
                if value is None:
                    if key in os.environ:
                        del os.environ[key]
                else:
                    os.environ[key] = value

    def test_config_from_env_invalid_values(self):
        """Test error handling for invalid environment values."""
        os.environ['REPEAT_CURATION_LINE_WIDTH'] = 'wide'

        try:
            with self.assertRaises(ConfigurationError):
                CurationConfig.from_env()
        finally:
            if 'REPEAT_CURATION_LINE_WIDTH' in os.environ:
                del os.environ['REPEAT_CURATION_LINE_WIDTH']


class TestLogHeader(unittest.TestCase):
    """Test the configuration echoed in project log headers."""

    def test_header_round_trip(self):
        """Test that a header rebuilds the same configuration."""
        config = CurationConfig(
            seq_file="consensi.fa",
            out_file="final.fa",
            exclude_file="excluded.fa",
            log_file="project.log",
            self_file="self.out",
            fold_dir="folds",
            verbose=True,
        )

        header = config.to_log_header()
        self.assertEqual(header['fold_file'], "folds")
        self.assertEqual(header['verbose_mode'], '1')
        self.assertEqual(header['align_file'], '')

        rebuilt = CurationConfig.from_log_header(header)
        self.assertEqual(rebuilt.seq_file, "consensi.fa")
        self.assertEqual(rebuilt.fold_dir, "folds")
        self.assertIsNone(rebuilt.align_file)
        self.assertTrue(rebuilt.verbose)

    def test_header_missing_keys(self):
        """Test that absent header keys fall back to defaults."""
        config = CurationConfig.from_log_header({'seq_file': 'consensi.fa'})
        self.assertEqual(config.seq_file, 'consensi.fa')
        self.assertIsNone(config.out_file)
        self.assertFalse(config.verbose)


class TestLoadConfig(unittest.TestCase):
    """Test the load_config function."""

    def test_load_default_config(self):
        """Test loading default configuration."""
        config = load_config(use_env=False)

        self.assertEqual(config.line_width, 50)
        self.assertEqual(config.memory_limit_mb, 4096)

    def test_load_config_priority(self):
        """Test configuration loading priority: file > env > defaults."""
        os.environ['REPEAT_CURATION_LINE_WIDTH'] = '80'
        os.environ['REPEAT_CURATION_SEQ_FILE'] = 'env.fa'

        config_data = {"line_width": 60}

        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            json.dump(config_data, f)
            config_path = f.name

        try:
            config = load_config(config_path=config_path, use_env=True)

            # File should override environment
            self.assertEqual(config.line_width, 60)
            # Environment value not in the file is kept
            self.assertEqual(config.seq_file, 'env.fa')
        finally:
            os.unlink(config_path)
            for key in ('REPEAT_CURATION_LINE_WIDTH', 'REPEAT_CURATION_SEQ_FILE'):
                if key in os.environ:
                    del os.environ[key]

    def test_load_config_no_env(self):
        """Test loading config without environment variables."""
        os.environ['REPEAT_CURATION_LINE_WIDTH'] = '80'

        try:
            config = load_config(use_env=False)
            self.assertEqual(config.line_width, 50)
        finally:
            if 'REPEAT_CURATION_LINE_WIDTH' in os.environ:
                del os.environ['REPEAT_CURATION_LINE_WIDTH']


if __name__ == '__main__':
    unittest.main()
