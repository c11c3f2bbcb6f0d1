import tempfile
import unittest
from pathlib import Path

import yaml

from model_metadata.models import storage
from model_metadata.models.schemas import (
    Artifact,
    EnrichmentRecord,
    ExtractedMetadata,
    ManifestEntry,
    ModelcardManifest,
)

REF = "oci://registry.example.com/org/model:1.0"


class TestStorage(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.output_dir = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def write_raw(self, data):
        path = storage.metadata_path(self.output_dir, REF)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return path

    def test_layout_uses_sanitized_ref(self):
        path = storage.metadata_path(self.output_dir, REF)
        self.assertEqual(path.name, "metadata.yaml")
        self.assertEqual(path.parent.name, "models")
        self.assertNotIn(":", path.parent.parent.name)

    def test_save_and_load(self):
        metadata = ExtractedMetadata(
            name="model",
            tags=["a"],
            create_time_since_epoch=1000,
            artifacts=[Artifact(uri=REF, create_time_since_epoch=5, custom_properties={"k": "v"})],
        )
        self.assertTrue(storage.save_metadata(self.output_dir, REF, metadata))

        raw = storage.read_yaml(storage.metadata_path(self.output_dir, REF))
        self.assertEqual(raw["createTimeSinceEpoch"], 1000)
        self.assertEqual(raw["artifacts"][0]["customProperties"]["k"]["string_value"], "v")

        loaded = storage.load_metadata(self.output_dir, REF)
        self.assertEqual(loaded.name, "model")
        self.assertEqual(loaded.last_update_time_since_epoch, 1000)
        self.assertEqual(loaded.artifacts[0].custom_properties, {"k": "v"})
        self.assertEqual(loaded.artifacts[0].last_update_time_since_epoch, 5)

    def test_legacy_string_artifacts_are_dropped(self):
        self.write_raw({"name": "old", "artifacts": ["oci://somewhere", {"uri": REF}]})
        loaded = storage.load_metadata(self.output_dir, REF)
        self.assertEqual(loaded.name, "old")
        self.assertEqual([artifact.uri for artifact in loaded.artifacts], [REF])

    def test_string_timestamps_are_coerced(self):
        self.write_raw({"name": "m", "createTimeSinceEpoch": "1736899200000"})
        loaded = storage.load_metadata(self.output_dir, REF)
        self.assertEqual(loaded.create_time_since_epoch, 1736899200000)
        self.assertEqual(loaded.last_update_time_since_epoch, 1736899200000)

    def test_unreadable_metadata(self):
        self.assertIsNone(storage.load_metadata(self.output_dir, REF))
        self.write_raw(["not", "a", "mapping"])
        self.assertIsNone(storage.load_metadata(self.output_dir, REF))

    def test_modelcard_round_trip(self):
        self.assertIsNone(storage.read_modelcard(self.output_dir, REF))
        self.assertTrue(storage.write_modelcard(self.output_dir, REF, b"# Card\n"))
        self.assertEqual(storage.read_modelcard(self.output_dir, REF), "# Card\n")

    def test_provenance(self):
        record = EnrichmentRecord(huggingface_model="org/model", data_sources={"name": "huggingface.yaml"})
        self.assertTrue(storage.save_provenance(self.output_dir, REF, record))
        loaded = storage.load_provenance_file(storage.provenance_path(self.output_dir, REF))
        self.assertEqual(loaded.huggingface_model, "org/model")
        self.assertEqual(loaded.data_sources["name"], "huggingface.yaml")

    def test_iter_metadata_files(self):
        self.assertEqual(storage.iter_metadata_files(self.output_dir / "missing"), [])
        storage.save_metadata(self.output_dir, REF, ExtractedMetadata(name="a"))
        storage.save_metadata(self.output_dir, REF + "-other", ExtractedMetadata(name="b"))
        self.assertEqual(len(storage.iter_metadata_files(self.output_dir)), 2)

    def test_write_manifests(self):
        entries = [ManifestEntry(ref=REF, modelcard=ModelcardManifest(present=False))]
        path = storage.write_manifests(self.output_dir, entries)
        data = storage.read_yaml(path)
        self.assertEqual(data["models"][0]["ref"], REF)
        self.assertFalse(data["models"][0]["modelcard"]["present"])

    def test_models_index(self):
        index_path = self.output_dir / "models-index.yaml"
        self.assertEqual(storage.load_models_index(index_path), [])
        index_path.write_text(
            "models:\n  - type: oci\n    uri: " + REF + "\n    labels: [validated]\n", encoding="utf-8"
        )
        entries = storage.load_models_index(index_path)
        self.assertEqual(entries[0].uri, REF)
        self.assertEqual(entries[0].labels, ["validated"])

    def test_ensure_output_dir_failure(self):
        blocker = self.output_dir / "file"
        blocker.write_text("x", encoding="utf-8")
        with self.assertRaises(storage.OutputDirectoryError):
            storage.ensure_output_dir(blocker / "nested")


if __name__ == '__main__':
    unittest.main()
