from pipeline.ppt_translation_pipeline import translate_ppt_content
from textProcessing.base_translator import DocumentTranslator


class PptTranslator(DocumentTranslator):
    def translate_document(self, data):
        return translate_ppt_content(
            data,
            self.make_batch_translator,
            self.dst_lang,
            src_lang=self.src_lang,
            blacklist=self.blacklist,
            autosize=self.config.get("autosize_shapes", True),
        )
