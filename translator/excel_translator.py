from pipeline.excel_translation_pipeline import translate_excel_content
from textProcessing.base_translator import DocumentTranslator


class ExcelTranslator(DocumentTranslator):
    """
    Excel translator for cell text, drawing shape text and sheet names.

    Args:
        selected_sheets: Names of the sheets to translate. None means all sheets.
        skip_already_translated: Leave text that already looks like the target language.
    """

    def __init__(self, *args, selected_sheets=None, skip_already_translated=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.selected_sheets = selected_sheets
        if skip_already_translated is None:
            skip_already_translated = self.config.get("skip_already_translated", True)
        self.skip_already_translated = skip_already_translated

    def translate_document(self, data):
        return translate_excel_content(
            data,
            self.make_batch_translator,
            self.dst_lang,
            src_lang=self.src_lang,
            blacklist=self.blacklist,
            selected_sheets=self.selected_sheets,
            skip_already_translated=self.skip_already_translated,
        )
