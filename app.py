import argparse
import os
import sys
from dataclasses import dataclass, field
from functools import partial
from importlib import import_module
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from config.languages_config import get_available_languages, get_language_code
from config.log_config import app_logger, file_logger
from config.system_config import DEFAULT_CONFIG_PATH, get_custom_paths, read_system_config
from llmWrapper.llm_wrapper import CriticalTranslationError, TranslationServiceError, load_backend
from pipeline.ooxml_package import PackageError
from textProcessing.text_protector import load_blacklist
from textProcessing.text_separator import load_glossary

#-------------------------------------------------------------------------
# Constants and Configuration
#-------------------------------------------------------------------------

# File extension to translator module mapping
TRANSLATOR_MODULES = {
    ".pptx": "translator.ppt_translator.PptTranslator",
    ".xlsx": "translator.excel_translator.ExcelTranslator",
}

CRITICAL_MESSAGES = {
    429: "Quota exhausted",
    401: "Authentication failed",
    403: "Permission denied",
}

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"


@dataclass
class FileResult:
    path: str
    status: str
    message: str = ""
    detail: str = ""
    output_path: Optional[str] = None


@dataclass
class JobReport:
    results: List[FileResult] = field(default_factory=list)
    aborted: bool = False
    critical_error: Optional[CriticalTranslationError] = None

    @property
    def succeeded(self):
        return [r for r in self.results if r.status == STATUS_SUCCESS]

    @property
    def failed(self):
        return [r for r in self.results if r.status == STATUS_FAILED]


#-------------------------------------------------------------------------
# Translation Processing Functions
#-------------------------------------------------------------------------

def get_translator_class(file_extension, selected_sheets=None):
    """Dynamically import and return appropriate translator class for file extension"""
    module_path = TRANSLATOR_MODULES.get(file_extension.lower())
    if not module_path:
        return None

    # Split into module path and class name
    module_name, class_name = module_path.rsplit('.', 1)
    module = import_module(module_name)
    translator_class = getattr(module, class_name)

    if file_extension.lower() == ".xlsx" and selected_sheets:
        return partial(translator_class, selected_sheets=selected_sheets)
    return translator_class


def classify_error(error):
    """Short user-facing message for a failed file"""
    if isinstance(error, CriticalTranslationError):
        return CRITICAL_MESSAGES.get(error.status_code, "Translation service refused the job")
    if isinstance(error, PackageError):
        return "Invalid document"
    if isinstance(error, ValueError) and "No sheets selected" in str(error):
        return "No sheets selected"
    if isinstance(error, TranslationServiceError):
        return "Translation failed"
    if isinstance(error, (OSError, IOError)):
        return "File could not be read or written"
    return "Unexpected error"


def process_multiple_files(files, backend, src_lang, dst_lang, config=None, context="", glossary=None,
                           blacklist=None, selected_sheets=None, progress_callback=None):
    """
    Translate each file in turn. A failing file is reported and the loop moves on;
    a critical translation error (quota, auth, permission) stops the whole job
    and every remaining file is reported as skipped.
    """
    config = config or read_system_config()
    result_dir, log_dir = get_custom_paths(config)
    report = JobReport()
    total_files = len(files)

    for i, file_path in enumerate(files):
        rel_path = os.path.basename(file_path)

        if report.aborted:
            report.results.append(FileResult(
                file_path, STATUS_SKIPPED, "Skipped",
                f"Job stopped after critical error: {report.critical_error}"
            ))
            continue

        file_logger.create_file_log(rel_path, log_dir=log_dir)
        app_logger.info(f"Processing file {i + 1}/{total_files}: {rel_path}")

        _, file_extension = os.path.splitext(file_path)
        translator_class = get_translator_class(file_extension, selected_sheets)
        if not translator_class:
            report.results.append(FileResult(
                file_path, STATUS_FAILED, "Unsupported file type",
                f"No translator for '{file_extension}'"
            ))
            continue

        def file_progress(value, desc=None):
            if progress_callback:
                overall_info = f" (File {i + 1}/{total_files})"
                progress_callback(i / total_files + value / total_files, desc=f"{desc or ''}{overall_info}")

        try:
            translator = translator_class(
                file_path, backend, src_lang, dst_lang,
                context=context, glossary=glossary, blacklist=blacklist,
                result_dir=result_dir, config=config,
            )
            output_path = translator.process(progress_callback=file_progress)
            report.results.append(FileResult(
                file_path, STATUS_SUCCESS, "Translation completed", output_path=output_path
            ))
        except CriticalTranslationError as e:
            app_logger.error(f"Critical translation error on {rel_path} (status {e.status_code}): {e}")
            report.aborted = True
            report.critical_error = e
            report.results.append(FileResult(file_path, STATUS_FAILED, classify_error(e), str(e)))
        except Exception as e:
            app_logger.exception(f"Error processing file {rel_path}: {e}")
            report.results.append(FileResult(file_path, STATUS_FAILED, classify_error(e), str(e)))

    file_logger.close()
    return report


def print_report(report, console=None):
    console = console or Console()
    table = Table(title="Translation results")
    table.add_column("File")
    table.add_column("Status")
    table.add_column("Message")
    table.add_column("Output / detail", overflow="fold")

    styles = {STATUS_SUCCESS: "green", STATUS_FAILED: "red", STATUS_SKIPPED: "yellow"}
    for result in report.results:
        style = styles.get(result.status, "")
        table.add_row(
            os.path.basename(result.path),
            f"[{style}]{result.status}[/{style}]" if style else result.status,
            result.message,
            result.output_path or result.detail,
        )
    console.print(table)

    if report.aborted:
        error = report.critical_error
        console.print(f"[bold red]Job aborted: {classify_error(error)} (status {error.status_code})[/bold red]")


#-------------------------------------------------------------------------
# Command line
#-------------------------------------------------------------------------

def build_parser(config):
    parser = argparse.ArgumentParser(description="Translate PowerPoint and Excel documents in place")
    parser.add_argument("files", nargs="+", help=".pptx / .xlsx files to translate")
    parser.add_argument("--src-lang", default=config["default_src_lang"],
                        help="Source language name or code, 'auto' to detect")
    parser.add_argument("--dst-lang", default=config["default_dst_lang"],
                        help=f"Target language ({', '.join(get_available_languages())})")
    parser.add_argument("--backend", default="pseudo",
                        help="Translation backend as 'module:attribute', or 'pseudo' for a dry run")
    parser.add_argument("--context", default="", help="Free-text context passed to every request")
    parser.add_argument("--glossary", help="Glossary CSV (language-code header) or XLSX (term, translation)")
    parser.add_argument("--blacklist", help="File of protected terms, one 'term[,case_sensitive]' per line")
    parser.add_argument("--sheets", nargs="*", help="Only translate these Excel sheets")
    parser.add_argument("--list-sheets", action="store_true", help="Print sheet names of .xlsx inputs and exit")
    parser.add_argument("--result-dir", help="Directory for translated files")
    parser.add_argument("--no-autosize", action="store_true", help="Do not grow shapes whose text got longer")
    parser.add_argument("--translate-all", action="store_true",
                        help="Also translate text that already looks like the target language")
    return parser


def main(argv=None):
    config_parser = argparse.ArgumentParser(add_help=False)
    config_parser.add_argument("--config", default=DEFAULT_CONFIG_PATH)
    config_args, remaining = config_parser.parse_known_args(argv)
    config = read_system_config(config_args.config)

    args = build_parser(config).parse_args(remaining)

    if args.list_sheets:
        from pipeline.excel_translation_pipeline import list_sheet_names
        for file_path in args.files:
            if file_path.lower().endswith(".xlsx"):
                with open(file_path, 'rb') as f:
                    print(f"{file_path}: {', '.join(list_sheet_names(f.read()))}")
        return 0

    if args.result_dir:
        config["result_dir"] = args.result_dir
    if args.no_autosize:
        config["autosize_shapes"] = False
    if args.translate_all:
        config["skip_already_translated"] = False

    src_lang = get_language_code(args.src_lang)
    dst_lang = get_language_code(args.dst_lang)
    glossary = load_glossary(args.glossary, src_lang, dst_lang) if args.glossary else []
    blacklist = load_blacklist(args.blacklist) if args.blacklist else []
    backend = load_backend(args.backend)

    def progress_callback(progress_value, desc=None):
        app_logger.info(f"{progress_value:.0%} {desc or ''}")

    report = process_multiple_files(
        args.files, backend, src_lang, dst_lang,
        config=config, context=args.context, glossary=glossary, blacklist=blacklist,
        selected_sheets=args.sheets, progress_callback=progress_callback,
    )
    print_report(report)

    if report.aborted:
        return 2
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
