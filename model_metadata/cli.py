import argparse
import logging
import sys

from .config import CATALOG_OUTPUT_PATH, MAX_CONCURRENT, MODELS_INDEX_PATH, OUTPUT_DIR
from .controllers.cli_controller import CollectorController


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Collect model metadata from registry modelcars and enrich it with Hugging Face data"
    )
    parser.add_argument("--input", default=MODELS_INDEX_PATH, help="Path to models index YAML file")
    parser.add_argument("--output-dir", default=OUTPUT_DIR, help="Output directory for extracted metadata")
    parser.add_argument("--catalog-output", default=CATALOG_OUTPUT_PATH, help="Path for the generated models catalog")
    parser.add_argument("--max-concurrent", type=positive_int, default=MAX_CONCURRENT,
                        help="Maximum number of models processed at once")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--skip-huggingface", action="store_true", help="Skip Hugging Face collection processing")
    parser.add_argument("--skip-enrichment", action="store_true", help="Skip metadata enrichment from Hugging Face")
    parser.add_argument("--skip-catalog", action="store_true", help="Skip catalog generation")
    parser.add_argument("--skip-report", action="store_true", help="Skip the metadata completeness report")
    parser.add_argument("--static-catalog-files", help="Comma-separated list of static catalog files to include")
    parser.add_argument("--skip-default-static-catalog", action="store_true",
                        help="Skip the default input/supplemental-catalog.yaml file")
    parser.add_argument("--report-dir", help="Directory for the metadata reports (defaults to --output-dir)")
    return parser


def main(argv=None):
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)

    controller = CollectorController()
    status = controller.run(
        input_path=args.input,
        output_dir=args.output_dir,
        catalog_output=args.catalog_output,
        max_concurrent=args.max_concurrent,
        verbose=args.verbose,
        skip_huggingface=args.skip_huggingface,
        skip_enrichment=args.skip_enrichment,
        skip_catalog=args.skip_catalog,
        skip_report=args.skip_report,
        static_catalog_files=args.static_catalog_files,
        skip_default_static_catalog=args.skip_default_static_catalog,
        report_dir=args.report_dir,
    )
    sys.exit(status)

if __name__ == "__main__":
    main()
