# In envswitch/i18n.py - gettext-backed translation for all user-facing output

import gettext
import os
from importlib import resources

DOMAIN = "envswitch"


class Translator:
    """
    A callable class that holds the global translation function.
    Missing catalogs fall back to the untranslated English message.
    """

    def __init__(self):
        self._translator = lambda s: s
        self.current_lang = "en"
        self.set_language(os.environ.get("ENVSWITCH_LANG"))

    def set_language(self, lang_code=None):
        try:
            localedir = str(resources.files(DOMAIN) / "locale")

            if lang_code is None:
                import locale

                lang_env = locale.getlocale()[0] or "en_US"
                lang_code = lang_env.split(".")[0]

            # Normalize language codes (handle both underscore and hyphen variants)
            normalized_code = lang_code.replace("-", "_")
            langs_to_try = [normalized_code]
            if "_" in normalized_code:
                langs_to_try.append(normalized_code.split("_")[0])
            langs_to_try.append("en")

            translation = gettext.translation(
                DOMAIN, localedir=localedir, languages=langs_to_try, fallback=True
            )
            self._translator = translation.gettext
            self.current_lang = translation.info().get("language", "en")
        except Exception:
            self.current_lang = "en"
            self._translator = lambda s: s

    def __call__(self, text):
        return self._translator(text)


# --- The global instance every module imports ---
_ = Translator()
