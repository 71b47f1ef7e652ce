from presence_confirm.utils.localization import LocalizationManager, set_language, t


def test_portuguese_catalogue_and_aliases():
    assert set_language("pt-BR") is True
    assert t("missing_ra") == "Por favor, informe seu RA."
    assert t("wizard_step", current=1, total=2) == "Passo 1 de 2"

    assert set_language("fr") is False
    assert t("action_back") == "Voltar"


def test_missing_key_uses_fallback_then_key():
    assert t("no_such_key", "Fallback {n}", n=3) == "Fallback 3"
    assert t("no_such_key") == "no_such_key"


def test_unreadable_catalogue_degrades_to_fallbacks(tmp_path):
    broken = tmp_path / "i18n.json"
    broken.write_text("{", encoding="utf-8")

    manager = LocalizationManager(broken)

    assert manager.translations == {}
    assert manager.t("missing_ra", "Please enter your RA.") == "Please enter your RA."
