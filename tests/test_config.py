"""
tests/test_config.py
====================
Profile loading and resolved job settings.
"""

import dataclasses
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from normpipe.core.config import (
    DEFAULT_PARALLELISM,
    DEFAULT_SCALE_TARGET,
    JobSettings,
    Profile,
    build_settings,
    load_profile,
    profiles_dir,
)
from normpipe.core.errors import ArgumentError


class LoadProfileTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.dir = Path(self._tmp.name)

    def test_no_name_gives_defaults(self):
        p = load_profile(None)
        self.assertEqual(p.amplitude.scale_target, DEFAULT_SCALE_TARGET)
        self.assertEqual(p.pool.parallelism, DEFAULT_PARALLELISM)
        self.assertEqual(p.discovery.extensions, [".mp3"])

    def test_bundled_standard_profile(self):
        p = load_profile("standard")
        self.assertEqual(p.name, "standard")
        self.assertEqual(p.amplitude.scale_target, 3200)
        self.assertEqual(p.stream.chunk_size, 4096)

    def test_profiles_ship_inside_the_package(self):
        import normpipe.core.config as config

        package_dir = Path(config.__file__).resolve().parents[1]
        self.assertEqual(profiles_dir(), package_dir / "profiles")
        self.assertTrue((profiles_dir() / "standard.yaml").is_file())

    def test_yaml_path_overrides_and_ignores_unknown_keys(self):
        path = self.dir / "loud.yaml"
        path.write_text(
            "amplitude:\n"
            "  scale_target: 4000\n"
            "  bogus: 1\n"
            "pool:\n"
            "  parallelism: 2\n"
            "discovery:\n"
            "  extensions: ['.mp3', '.flac']\n",
            encoding="utf-8",
        )
        p = load_profile(str(path))
        self.assertEqual(p.name, "loud")
        self.assertEqual(p.amplitude.scale_target, 4000)
        self.assertFalse(hasattr(p.amplitude, "bogus"))
        self.assertEqual(p.pool.parallelism, 2)
        self.assertEqual(p.discovery.extensions, [".mp3", ".flac"])
        self.assertEqual(p.ffmpeg.binary, "ffmpeg")

    def test_missing_profile(self):
        with self.assertRaises(ArgumentError):
            load_profile("does-not-exist")

    def test_non_mapping_profile(self):
        path = self.dir / "list.yaml"
        path.write_text("- 1\n- 2\n", encoding="utf-8")
        with self.assertRaises(ArgumentError):
            load_profile(str(path))


class BuildSettingsTestCase(unittest.TestCase):
    def test_defaults(self):
        s = build_settings(Profile())
        self.assertEqual(s.scale_target, 3200.0)
        self.assertEqual(s.parallelism, 8)
        self.assertEqual(s.extensions, (".mp3",))
        self.assertFalse(s.dry_run)

    def test_command_line_wins(self):
        s = build_settings(Profile(), scale_target=1400, parallelism=3, dry_run=True)
        self.assertEqual(s.scale_target, 1400.0)
        self.assertEqual(s.parallelism, 3)
        self.assertTrue(s.dry_run)

    def test_parallelism_clamped(self):
        self.assertEqual(build_settings(Profile(), parallelism=0).parallelism, 1)
        self.assertEqual(build_settings(Profile(), parallelism=-4).parallelism, 1)

    def test_invalid_amplitude(self):
        with self.assertRaises(ArgumentError):
            build_settings(Profile(), scale_target=0)
        with self.assertRaises(ArgumentError):
            build_settings(Profile(), scale_target=-10)

    def test_invalid_tolerance(self):
        p = Profile()
        p.amplitude.tolerance = 1.0
        with self.assertRaises(ArgumentError):
            build_settings(p)

    def test_non_numeric_profile_values(self):
        for section, key, value in (
            ("amplitude", "tolerance", "ten"),
            ("pool", "parallelism", "eight"),
            ("ffmpeg", "timeout_sec", "soon"),
            ("stream", "chunk_size", None),
        ):
            with self.subTest(key=key):
                p = Profile()
                setattr(getattr(p, section), key, value)
                with self.assertRaises(ArgumentError) as cm:
                    build_settings(p)
                self.assertIsInstance(cm.exception.__cause__, (TypeError, ValueError))

    def test_non_numeric_override(self):
        with self.assertRaises(ArgumentError):
            build_settings(Profile(), parallelism="many")

    def test_odd_chunk_size(self):
        p = Profile()
        p.stream.chunk_size = 4095
        with self.assertRaises(ArgumentError):
            build_settings(p)

    def test_zero_timeout_disables_it(self):
        p = Profile()
        p.ffmpeg.timeout_sec = 0
        self.assertIsNone(build_settings(p).ffmpeg_timeout_sec)

    def test_extensions_normalized(self):
        p = Profile()
        p.discovery.extensions = ["MP3", ".Flac"]
        self.assertEqual(build_settings(p).extensions, (".mp3", ".flac"))

    def test_ffmpeg_env_override(self):
        with patch.dict(os.environ, {"NORMALIZE_FFMPEG": "/opt/ffmpeg/bin/ffmpeg"}):
            s = build_settings(Profile())
        self.assertEqual(s.ffmpeg_binary, "/opt/ffmpeg/bin/ffmpeg")

    def test_settings_are_frozen(self):
        s = JobSettings()
        with self.assertRaises(dataclasses.FrozenInstanceError):
            s.scale_target = 1.0


if __name__ == "__main__":
    unittest.main()
