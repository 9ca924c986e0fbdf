import os
import tempfile
from pathlib import Path
from unittest import TestCase, mock

import yaml

from autoencode.config import (
    Settings,
    default_config,
    load_config,
    save_default_config,
    validate_config,
)
from autoencode.errors import ConfigError

STEPS = ["extract", "encode", "sort"]


class LoadConfigTests(TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.cfg_path = self.root / "config.yaml"
        self.secrets = self.root / "secrets.yaml"
        env = {"AUTOENCODE_SECRETS": str(self.secrets)}
        self._env = mock.patch.dict(os.environ, env)
        self._env.start()
        for key in ("DOCKER", "AE_WATCH_DIR", "AE_EXTRACT_DIR", "AE_OUTPUT_DIR", "AE_MOVIES_DIR", "AE_TV_DIR", "MDB_API"):
            os.environ.pop(key, None)

    def tearDown(self) -> None:
        self._env.stop()
        self._tmp.cleanup()

    def _write(self, data) -> None:
        self.cfg_path.write_text(yaml.safe_dump(data), encoding="utf-8")

    def test_defaults_fill_gaps(self) -> None:
        self._write({"paths": {"output": str(self.root / "out")}, "pipeline": ["extract", "encode"]})
        config = load_config(self.cfg_path)
        self.assertEqual(config["pipeline"], ["extract", "encode"])
        self.assertEqual(config["preferred_language"], "eng")
        self.assertEqual(config["matching"]["threshold"], 0.75)
        self.assertEqual(config["paths"]["output"], str(self.root / "out"))

    def test_secrets_and_env_values(self) -> None:
        self._write({})
        self.secrets.write_text(yaml.safe_dump({"catalog": {"tmdb": {"api_key": "from-secrets"}}}), encoding="utf-8")
        self.assertEqual(load_config(self.cfg_path)["catalog"]["tmdb"]["api_key"], "from-secrets")
        self.secrets.unlink()
        os.environ["MDB_API"] = "from-env"
        self.assertEqual(load_config(self.cfg_path)["catalog"]["tmdb"]["api_key"], "from-env")

    def test_directory_env_overrides(self) -> None:
        self._write({"paths": {"tv": "/library/tv"}})
        os.environ["AE_TV_DIR"] = "/mnt/tv"
        config = load_config(self.cfg_path)
        self.assertEqual(config["paths"]["tv"], "/mnt/tv")
        os.environ["DOCKER"] = "1"
        config = load_config(self.cfg_path)
        self.assertEqual(config["paths"]["watch"], "/watch")
        self.assertEqual(config["paths"]["staging"], "/extract")
        self.assertEqual(config["paths"]["tv"], "/tv")

    def test_non_mapping_is_rejected(self) -> None:
        self.cfg_path.write_text("- just\n- a list\n", encoding="utf-8")
        with self.assertRaises(ConfigError):
            load_config(self.cfg_path)

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_config(self.root / "nope.yaml")

    def test_saved_defaults_load_back(self) -> None:
        path = save_default_config(self.cfg_path)
        config = load_config(path)
        self.assertEqual(config["pipeline"], STEPS)
        errors, _ = validate_config(config, STEPS)
        self.assertEqual(errors, [])


class ValidateConfigTests(TestCase):
    def test_defaults_are_valid(self) -> None:
        errors, warnings = validate_config(default_config(), STEPS)
        self.assertEqual(errors, [])
        self.assertTrue(any("paths.tv" in w for w in warnings))

    def test_schema_and_semantic_errors(self) -> None:
        config = default_config()
        config["paths"]["bogus"] = "x"
        config["pipeline"] = ["extract", "polish"]
        config["matching"]["threshold"] = 2
        config["ingest"]["concurrency"] = 0
        errors, _ = validate_config(config, STEPS)
        joined = "\n".join(errors)
        self.assertIn("bogus", joined)
        self.assertIn("polish", joined)
        self.assertIn("matching.threshold", joined)
        self.assertIn("ingest.concurrency", joined)

    def test_missing_tmdb_key_is_a_warning(self) -> None:
        config = default_config()
        config["paths"]["movies"] = "/library/movies"
        config["catalog"]["tmdb"]["api_key"] = ""
        errors, warnings = validate_config(config, STEPS)
        self.assertEqual(errors, [])
        self.assertTrue(any("tmdb" in w for w in warnings))


class SettingsTests(TestCase):
    def test_requires_output(self) -> None:
        config = default_config()
        config["paths"]["output"] = None
        with self.assertRaises(ConfigError):
            Settings.from_config(config)

    def test_typed_view(self) -> None:
        config = default_config()
        config["output_format"] = "mkv"
        config["paths"]["tv"] = "/library/tv"
        settings = Settings.from_config(config)
        self.assertEqual(settings.output_format, ".mkv")
        self.assertEqual(settings.directories.tv, Path("/library/tv").resolve())
        self.assertEqual(settings.pipeline, STEPS)
        self.assertEqual(settings.ingest.concurrency, 1)
        self.assertEqual(settings.category_for(settings.directories.tv / "Show" / "x.mkv"), "tv")
        self.assertIsNone(settings.category_for(None))
