import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from io import StringIO
from pathlib import Path
from unittest.mock import MagicMock

import yaml

from model_metadata.cli import build_parser
from model_metadata.controllers.cli_controller import CollectorController
from model_metadata.models.schemas import Artifact, ModelcardFetch

REF = "registry.example.com/org/granite-model:1.0"

MODELCARD = b"""---
name: granite-model
provider: IBM
license: apache-2.0
---

# Granite model
"""


class TestParser(unittest.TestCase):
    def test_defaults(self):
        args = build_parser().parse_args([])
        self.assertEqual(args.max_concurrent, 5)
        self.assertFalse(args.skip_enrichment)
        self.assertIsNone(args.static_catalog_files)

    def test_rejects_non_positive_concurrency(self):
        with redirect_stderr(StringIO()), self.assertRaises(SystemExit):
            build_parser().parse_args(["--max-concurrent", "0"])


class TestCollectorController(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.index_path = self.root / "models-index.yaml"
        self.index_path.write_text(yaml.safe_dump({"models": [{"type": "oci", "uri": REF, "labels": ["validated"]}]}))

        self.registry = MagicMock()
        self.registry.fetch_modelcard.return_value = ModelcardFetch(content=MODELCARD, found=True)
        self.registry.fetch_artifacts.return_value = [Artifact(uri="oci://" + REF, create_time_since_epoch=1000)]
        self.hub = MagicMock()
        self.controller = CollectorController(registry=self.registry, hub=self.hub, data_dir=str(self.root / "data"))

    def tearDown(self):
        self._tmp.cleanup()

    def run_controller(self, **kwargs):
        options = dict(
            input_path=str(self.index_path),
            output_dir=str(self.root / "output"),
            catalog_output=str(self.root / "data" / "models-catalog.yaml"),
            skip_huggingface=True,
            skip_default_static_catalog=True,
        )
        options.update(kwargs)
        with redirect_stdout(StringIO()):
            return self.controller.run(**options)

    def test_full_run(self):
        self.assertEqual(self.run_controller(), 0)

        catalog = yaml.safe_load((self.root / "data" / "models-catalog.yaml").read_text(encoding="utf-8"))
        self.assertEqual(len(catalog["models"]), 1)
        model = catalog["models"][0]
        self.assertEqual(model["name"], "granite-model")
        self.assertEqual(model["provider"], "IBM")
        self.assertIn("validated", model["customProperties"])
        self.assertEqual(model["artifacts"][0]["uri"], "oci://" + REF)
        self.assertTrue((self.root / "output" / "manifests.yaml").exists())
        self.assertTrue((self.root / "output" / "metadata-report.md").exists())
        self.hub.list_validated_collections.assert_not_called()

    def test_static_catalog_is_appended(self):
        static = self.root / "static.yaml"
        static.write_text(yaml.safe_dump({
            "source": "Example",
            "models": [{"name": "zz-static", "artifacts": [{"uri": "oci://static:1"}]}],
        }))
        self.assertEqual(self.run_controller(static_catalog_files=str(static), skip_report=True), 0)

        catalog = yaml.safe_load((self.root / "data" / "models-catalog.yaml").read_text(encoding="utf-8"))
        self.assertEqual([model["name"] for model in catalog["models"]], ["granite-model", "zz-static"])

    def test_failing_artifact_refresh_does_not_abort_the_run(self):
        other = "registry.example.com/org/other-model:2.0"
        self.index_path.write_text(yaml.safe_dump({"models": [
            {"type": "oci", "uri": REF}, {"type": "oci", "uri": other},
        ]}))
        self.registry.fetch_modelcard.side_effect = lambda ref: ModelcardFetch(
            content=MODELCARD.replace(b"granite-model", ref.split("/")[-1].split(":")[0].encode()), found=True
        )
        calls = {}

        def fetch_artifacts(ref):
            calls[ref] = calls.get(ref, 0) + 1
            if ref == other and calls[ref] > 1:
                raise AttributeError("'list' object has no attribute 'get'")
            return [Artifact(uri="oci://" + ref, create_time_since_epoch=1000)]

        self.registry.fetch_artifacts.side_effect = fetch_artifacts

        self.assertEqual(self.run_controller(skip_report=True), 0)

        catalog = yaml.safe_load((self.root / "data" / "models-catalog.yaml").read_text(encoding="utf-8"))
        self.assertEqual([model["name"] for model in catalog["models"]], ["granite-model", "other-model"])
        self.assertEqual(calls, {REF: 2, other: 2})

    def test_skip_catalog(self):
        self.assertEqual(self.run_controller(skip_catalog=True, skip_enrichment=True), 0)
        self.assertFalse((self.root / "data" / "models-catalog.yaml").exists())
        self.registry.fetch_artifacts.assert_called_once_with(REF)

    def test_unusable_output_dir(self):
        blocker = self.root / "file"
        blocker.write_text("x")
        self.assertEqual(self.run_controller(output_dir=str(blocker / "output")), 1)
        self.registry.fetch_modelcard.assert_not_called()

    def test_missing_index_without_collections(self):
        self.assertEqual(self.run_controller(input_path=str(self.root / "absent.yaml")), 0)
        self.registry.fetch_modelcard.assert_not_called()


if __name__ == '__main__':
    unittest.main()
