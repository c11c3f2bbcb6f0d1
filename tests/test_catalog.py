import tempfile
import unittest
from pathlib import Path

import yaml

from model_metadata.models import storage
from model_metadata.models.catalog import (
    DEFAULT_LOGO,
    build_catalog,
    deduplicate_models,
    determine_logo,
    encode_svg_data_uri,
    group_key,
    load_static_catalogs,
    static_catalog_paths,
    to_catalog_metadata,
    write_catalog,
)
from model_metadata.models.schemas import Artifact, CatalogArtifact, CatalogMetadata, ExtractedMetadata


def _model(name, uri, create=None, update=None, **fields):
    return CatalogMetadata(
        name=name,
        artifacts=[CatalogArtifact(uri=uri, create_time_since_epoch=create, last_update_time_since_epoch=update)],
        **fields,
    )


class TestCatalogConversion(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.assets_dir = Path(self._tmp.name)
        (self.assets_dir / "catalog-model.svg").write_bytes(b"<svg/>")
        (self.assets_dir / "catalog-validated_model.svg").write_bytes(b"<svg id='v'/>")
        encode_svg_data_uri.cache_clear()

    def tearDown(self):
        encode_svg_data_uri.cache_clear()
        self._tmp.cleanup()

    def test_tags_become_custom_properties(self):
        metadata = ExtractedMetadata(name="m", tags=["granite", "validated"], validated_on=["RHOAI 2.20", "RHEL AI 1.5"])
        catalog_model = to_catalog_metadata(metadata, self.assets_dir)
        self.assertEqual(catalog_model.custom_properties["granite"], "")
        self.assertEqual(catalog_model.custom_properties["validated_on"], "RHOAI 2.20,RHEL AI 1.5")

    def test_timestamps_fall_back_to_first_artifact(self):
        metadata = ExtractedMetadata(
            name="m", artifacts=[Artifact(uri="oci://a", create_time_since_epoch=10, last_update_time_since_epoch=20)]
        )
        catalog_model = to_catalog_metadata(metadata, self.assets_dir)
        self.assertEqual(catalog_model.create_time_since_epoch, "10")
        self.assertEqual(catalog_model.last_update_time_since_epoch, "20")
        self.assertEqual(catalog_model.artifacts[0].create_time_since_epoch, "10")

    def test_logo_depends_on_validated_tag(self):
        default_logo = determine_logo([], self.assets_dir)
        validated_logo = determine_logo(["validated"], self.assets_dir)
        self.assertTrue(default_logo.startswith("data:image/svg+xml;base64,"))
        self.assertNotEqual(default_logo, validated_logo)

    def test_logo_falls_back_to_path(self):
        missing = Path(self._tmp.name) / "missing"
        self.assertEqual(determine_logo([], missing), str(missing / DEFAULT_LOGO))


class TestDeduplication(unittest.TestCase):
    def test_group_key(self):
        self.assertEqual(group_key("Test-Model"), group_key("test model "))
        self.assertEqual(group_key("granite_3_1"), "granite 3 1")
        self.assertIsNone(group_key("  "))
        self.assertIsNone(group_key(None))

    def test_same_model_from_two_references(self):
        first = _model("Test-Model", "oci://r/a:1", create="200", update="300", provider="Acme")
        second = _model("test model ", "oci://r/b:1", create="100", update="400", description="filled later")
        result = deduplicate_models([first, second])

        self.assertEqual(len(result), 1)
        merged = result[0]
        self.assertEqual(merged.name, "Test-Model")
        self.assertEqual(merged.provider, "Acme")
        self.assertEqual(merged.description, "filled later")
        self.assertEqual([artifact.uri for artifact in merged.artifacts], ["oci://r/a:1", "oci://r/b:1"])
        self.assertEqual(merged.create_time_since_epoch, "100")
        self.assertEqual(merged.last_update_time_since_epoch, "400")

    def test_first_record_wins_scalars_and_artifacts_are_unique(self):
        first = _model("m", "oci://r/a:1", license="apache-2.0")
        second = _model("m", "oci://r/a:1", license="mit")
        merged = deduplicate_models([first, second])[0]
        self.assertEqual(merged.license, "apache-2.0")
        self.assertEqual(len(merged.artifacts), 1)

    def test_sorted_with_unnamed_last(self):
        models = [_model("zeta", "oci://z"), _model(None, "oci://n"), _model("alpha", "oci://a")]
        result = deduplicate_models(models)
        self.assertEqual([model.name for model in result], ["alpha", "zeta", None])


class TestStaticCatalogs(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def write(self, name, data):
        path = self.root / name
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return path

    def test_valid_invalid_and_missing(self):
        valid = self.write("valid.yaml", {
            "source": "Example",
            "models": [{"name": "static", "artifacts": [{"uri": "oci://static:1"}]}],
        })
        invalid = self.write("invalid.yaml", {"models": [{"name": "broken"}]})
        broken = self.root / "broken.yaml"
        broken.write_text("source: [unclosed\n", encoding="utf-8")

        models = load_static_catalogs([valid, invalid, broken, self.root / "missing.yaml"])
        self.assertEqual([model.name for model in models], ["static"])

    def test_static_catalog_paths(self):
        default = self.write("supplemental.yaml", {"source": "x"})
        paths = static_catalog_paths(" one.yaml, ,two.yaml", default)
        self.assertEqual(paths, [Path("one.yaml"), Path("two.yaml"), default])
        self.assertEqual(static_catalog_paths(None, self.root / "absent.yaml"), [])
        self.assertEqual(static_catalog_paths(None, None), [])


class TestBuildCatalog(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.output_dir = Path(self._tmp.name) / "output"

    def tearDown(self):
        self._tmp.cleanup()

    def test_build_and_write(self):
        storage.save_metadata(self.output_dir, "oci://r/a:1", ExtractedMetadata(
            name="b-model", artifacts=[Artifact(uri="oci://r/a:1", create_time_since_epoch=1)]
        ))
        storage.save_metadata(self.output_dir, "oci://r/b:1", ExtractedMetadata(
            name="a-model", artifacts=[Artifact(uri="oci://r/b:1")]
        ))
        storage.save_metadata(self.output_dir, "oci://r/c:1", ExtractedMetadata(name="not listed"))
        static = [_model("static", "oci://static:1")]

        catalog = build_catalog(self.output_dir, static, refs=["oci://r/a:1", "oci://r/b:1", "oci://r/none:1"])
        self.assertEqual([model.name for model in catalog.models], ["a-model", "b-model", "static"])

        path = write_catalog(catalog, Path(self._tmp.name) / "data" / "models-catalog.yaml")
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        self.assertEqual(data["source"], catalog.source)
        self.assertEqual(data["models"][1]["artifacts"][0]["createTimeSinceEpoch"], "1")
        self.assertNotIn("provider", data["models"][0])

    def test_all_records_without_refs(self):
        storage.save_metadata(self.output_dir, "oci://r/a:1", ExtractedMetadata(name="one"))
        storage.save_metadata(self.output_dir, "oci://r/b:1", ExtractedMetadata(name="two"))
        self.assertEqual(len(build_catalog(self.output_dir).models), 2)


if __name__ == '__main__':
    unittest.main()
