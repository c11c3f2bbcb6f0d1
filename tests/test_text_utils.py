import unittest
from datetime import datetime
from model_metadata.utils.text_utils import (
    clean_extracted_value,
    deduplicate,
    generate_description_from_model_name,
    generate_readable_description,
    is_valid_value,
    normalize_task,
    parse_date_to_epoch,
    parse_language_names,
    parse_time_to_epoch,
    sanitize_manifest_ref,
    strip_yaml_frontmatter,
)

JAN_15_2025_MS = 1736899200000
MAY_1_2024_MS = 1714521600000


class TestTextUtils(unittest.TestCase):
    def test_strip_yaml_frontmatter(self):
        self.assertEqual(strip_yaml_frontmatter("---\nlicense: mit\n---\n\n# Title\n"), "# Title\n")
        self.assertEqual(strip_yaml_frontmatter("# No header\n"), "# No header\n")
        self.assertEqual(strip_yaml_frontmatter("---\nunterminated: true\n"), "---\nunterminated: true\n")

    def test_parse_language_names(self):
        self.assertEqual(parse_language_names("English, Spanish and French"), ["en", "es", "fr"])
        self.assertEqual(parse_language_names("Klingon"), [])

    def test_generate_readable_description(self):
        self.assertEqual(
            generate_readable_description("registry.redhat.io/rhelai1/modelcar-granite-3-1-8b-instruct:1.5"),
            "Granite 3 1 8b Instruct - An instruction-tuned language model",
        )
        self.assertTrue(generate_readable_description("mistral-7b-base").endswith("A foundation language model"))
        self.assertEqual(generate_readable_description(""), "")

    def test_generate_description_from_model_name(self):
        self.assertEqual(
            generate_description_from_model_name("RedHatAI/Llama-3.3-70B-Instruct-quantized.w8a8"),
            "Llama 3.3 70B Instruct (w8a8 quantized)",
        )

    def test_normalize_task(self):
        self.assertEqual(normalize_task("Chatbot"), "text-generation")
        self.assertEqual(normalize_task("sentiment analysis"), "text-classification")
        self.assertEqual(normalize_task("Unknown thing"), "Unknown thing")

    def test_is_valid_value(self):
        self.assertTrue(is_valid_value("abc", 2, 10))
        self.assertFalse(is_valid_value("a", 2, 10))
        self.assertFalse(is_valid_value("ab\x01", 2, 10))

    def test_clean_extracted_value(self):
        self.assertEqual(clean_extracted_value("**Meta**"), "Meta")
        self.assertEqual(clean_extracted_value("Red Hat:"), "Red Hat")

    def test_sanitize_manifest_ref(self):
        self.assertEqual(
            sanitize_manifest_ref("registry.redhat.io/rhelai1/modelcar-granite:1.5"),
            "registry.redhat.io_rhelai1_modelcar-granite_1.5",
        )
        self.assertEqual(sanitize_manifest_ref("oci://example.com/org/model"), "oci_example.com_org_model")

    def test_parse_date_to_epoch(self):
        self.assertEqual(parse_date_to_epoch("01/15/2025"), JAN_15_2025_MS)
        self.assertEqual(parse_date_to_epoch("2025-01-15"), JAN_15_2025_MS)
        self.assertIsNone(parse_date_to_epoch("not a date"))

    def test_parse_time_to_epoch(self):
        self.assertEqual(parse_time_to_epoch("2024-05-01T00:00:00Z"), MAY_1_2024_MS)
        self.assertEqual(parse_time_to_epoch(datetime(2024, 5, 1)), MAY_1_2024_MS)
        self.assertIsNone(parse_time_to_epoch(""))
        self.assertIsNone(parse_time_to_epoch("garbage"))

    def test_deduplicate(self):
        self.assertEqual(deduplicate(["a", "", "b", "a"]), ["a", "b"])


if __name__ == '__main__':
    unittest.main()
