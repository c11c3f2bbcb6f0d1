import tempfile
import unittest
from pathlib import Path

import yaml

from model_metadata.models import storage
from model_metadata.models.catalog import write_catalog
from model_metadata.models.report import (
    detection_method,
    format_value,
    generate_metadata_report,
    generate_report,
    render_markdown,
)
from model_metadata.models.schemas import (
    CatalogArtifact,
    CatalogMetadata,
    EnrichmentRecord,
    ExtractedMetadata,
    ModelsCatalog,
)


def _catalog():
    documented = CatalogMetadata(
        name="m1",
        provider="IBM",
        readme="# m1",
        license="apache-2.0",
        create_time_since_epoch="0",
        artifacts=[CatalogArtifact(uri="oci://registry.example.com/org/m1:1")],
    )
    return ModelsCatalog(source="Example", models=[documented, CatalogMetadata(name="m2")])


def _provenance():
    return {"m1": EnrichmentRecord(data_sources={
        "name": "huggingface.yaml", "provider": "null", "license": "modelcard.yaml",
    })}


class TestFormatting(unittest.TestCase):
    def test_format_value(self):
        self.assertEqual(format_value(None), "—")
        self.assertEqual(format_value([]), "—")
        self.assertEqual(format_value(["en"]), "en")
        self.assertEqual(format_value(["en", "fr", "de"]), "en (+2 more)")
        self.assertEqual(format_value("a|b\nc"), "a\\|b c")
        self.assertEqual(format_value("x" * 60), "x" * 50 + "...")

    def test_detection_method(self):
        self.assertEqual(detection_method("modelcard.yaml"), "YAML frontmatter")
        self.assertEqual(detection_method("huggingface.regex"), "Regex extraction")
        self.assertEqual(detection_method("huggingface.api"), "API call")
        self.assertEqual(detection_method("huggingface.tags"), "Tags metadata")
        self.assertEqual(detection_method("modelcard.inferred"), "Inferred")
        self.assertEqual(detection_method("generated"), "Generated")
        self.assertEqual(detection_method("registry"), "Registry artifacts")
        self.assertEqual(detection_method("something"), "Unknown")


class TestGenerateReport(unittest.TestCase):
    def test_field_analysis(self):
        report = generate_report(_catalog(), _provenance())
        first = report.models[0]

        self.assertEqual(first.fields["name"].source, "huggingface.yaml")
        self.assertEqual(first.fields["provider"].source, "modelcard.regex")
        self.assertEqual(first.fields["readme"].value, "present")
        self.assertEqual(first.fields["artifacts"].source, "registry")
        self.assertTrue(first.fields["createTimeSinceEpoch"].is_null)
        self.assertIn("description", first.missing_fields)
        self.assertEqual(first.source_breakdown["Modelcard Regex"], 2)
        self.assertAlmostEqual(first.yaml_health, 40.0)

    def test_summary(self):
        summary = generate_report(_catalog(), _provenance()).summary
        self.assertEqual(summary.total_models, 2)
        self.assertEqual(summary.field_completeness["name"].percentage, 100.0)
        self.assertEqual(summary.field_completeness["provider"].percentage, 50.0)
        self.assertEqual(summary.field_completeness["description"].null, 2)
        self.assertEqual(next(iter(summary.data_sources)), "modelcard.regex")
        self.assertEqual(summary.data_sources["modelcard.regex"], 3)

    def test_empty_catalog(self):
        report = generate_report(ModelsCatalog(source="Example"), {})
        self.assertEqual(report.summary.total_models, 0)
        self.assertEqual(report.summary.field_completeness["name"].percentage, 0.0)

    def test_render_markdown(self):
        text = render_markdown(generate_report(_catalog(), _provenance()))
        self.assertIn("# Model Metadata Completeness Report", text)
        self.assertIn("**Total Models:** 2", text)
        self.assertIn("| name | 2 | 0 | 100.0% |", text)
        self.assertIn("### m1", text)
        self.assertIn("**YAML Frontmatter Health:** 40.0%", text)
        self.assertIn("| name | m1 | huggingface.yaml | YAML frontmatter | ✅ |", text)


class TestMetadataReportFiles(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_writes_both_reports(self):
        output_dir = self.root / "output"
        ref = "registry.example.com/org/m1:1"
        storage.save_metadata(output_dir, ref, ExtractedMetadata(name="m1"))
        storage.save_provenance(output_dir, ref, _provenance()["m1"])
        catalog_path = write_catalog(_catalog(), self.root / "models-catalog.yaml")

        reports = generate_metadata_report(catalog_path, output_dir, self.root / "reports")

        self.assertTrue(reports["markdown"].exists())
        data = yaml.safe_load(reports["yaml"].read_text(encoding="utf-8"))
        self.assertEqual(data["summary"]["total_models"], 2)
        self.assertEqual(data["models"][0]["fields"]["name"]["source"], "huggingface.yaml")

    def test_unreadable_catalog(self):
        self.assertIsNone(generate_metadata_report(self.root / "missing.yaml", self.root, self.root))


if __name__ == '__main__':
    unittest.main()
