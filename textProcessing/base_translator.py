import os
import time
from datetime import datetime

from config.languages_config import get_language_code
from config.log_config import app_logger
from config.system_config import DEFAULT_SYSTEM_CONFIG
from .batch_translator import BatchTranslator, RetryPolicy, choose_batch_size


class DocumentTranslator:
    """Base class for per-format translators.

    Subclasses implement ``translate_document`` (bytes in, bytes out); this class
    handles reading the input, building the batch translator for the job size,
    progress reporting and writing the result file.
    """

    def __init__(self, input_file_path, backend, src_lang, dst_lang, context="", glossary=None,
                 blacklist=None, result_dir="result", config=None, retry_policy=None):
        self.input_file_path = input_file_path
        self.backend = backend
        self.src_lang = get_language_code(src_lang)
        self.dst_lang = get_language_code(dst_lang)
        self.context = context
        self.glossary = glossary or []
        self.blacklist = blacklist or []
        self.result_dir = result_dir
        self.config = dict(DEFAULT_SYSTEM_CONFIG)
        self.config.update(config or {})
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=self.config["max_attempts"],
            base_delay=self.config["retry_base_delay"],
        )
        self.last_ui_update_time = 0
        self.progress_callback = None
        self.batch_translator = None
        self.translation_start_time = None
        self.translation_end_time = None

    def update_ui_safely(self, progress_callback, progress, desc):
        """Update progress with rate limiting"""
        current_time = time.time()
        if progress < 1.0 and current_time - self.last_ui_update_time < 0.1:
            return
        try:
            if progress_callback:
                progress_callback(progress, desc=desc)
                self.last_ui_update_time = current_time
        except Exception as e:
            app_logger.warning(f"Error updating UI: {e}")

    def make_batch_translator(self, part_count):
        """Batch translator sized for a job spanning part_count sheets/parts"""
        batch_size = choose_batch_size(
            part_count,
            batch_size=self.config["batch_size"],
            large_batch_size=self.config["large_job_batch_size"],
            threshold=self.config["large_job_threshold"],
        )
        inter_chunk_delay = 0.0
        if part_count > self.config["slow_job_threshold"]:
            inter_chunk_delay = self.config["inter_chunk_delay"]

        def chunk_progress(progress, desc=None):
            self.update_ui_safely(self.progress_callback, progress, desc or "Translating")

        self.batch_translator = BatchTranslator(
            self.backend,
            self.dst_lang,
            source_lang=None if self.src_lang == "auto" else self.src_lang,
            context=self.context,
            glossary=self.glossary,
            batch_size=batch_size,
            retry_policy=self.retry_policy,
            inter_chunk_delay=inter_chunk_delay,
            progress_callback=chunk_progress,
        )
        return self.batch_translator

    def translate_document(self, data):
        """Translate package bytes - to be implemented by subclass"""
        raise NotImplementedError

    def get_output_path(self):
        base_name, file_extension = os.path.splitext(os.path.basename(self.input_file_path))
        # Use source_lang2target_lang format (e.g., en2vi)
        lang_suffix = f"{self.src_lang}2{self.dst_lang}"
        return os.path.join(self.result_dir, f"{base_name}_{lang_suffix}{file_extension}")

    def process(self, progress_callback=None):
        """Translate the input file and return the output file path"""
        self.translation_start_time = datetime.now()
        self.progress_callback = progress_callback

        app_logger.info(f"Reading {self.input_file_path}")
        self.update_ui_safely(progress_callback, 0, "Extracting text...")
        with open(self.input_file_path, 'rb') as f:
            data = f.read()

        translated_data = self.translate_document(data)

        os.makedirs(self.result_dir, exist_ok=True)
        output_path = self.get_output_path()
        with open(output_path, 'wb') as f:
            f.write(translated_data)

        self.translation_end_time = datetime.now()
        elapsed = (self.translation_end_time - self.translation_start_time).total_seconds()
        app_logger.info(f"Saved {output_path} in {elapsed:.1f}s")
        self.update_ui_safely(progress_callback, 1.0, "Translation completed")
        return output_path
