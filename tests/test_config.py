import json

from storefront.config import StoreConfig


def test_env_and_settings_file(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("PAYKEEPER_URL=https://pay.test/\nPAYKEEPER_USER=api\nPAYKEEPER_PASSWORD=pw\nPORT=4000\n")
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps({"PAYMENT_CHECK_INTERVAL_MINUTES": 5, "JWT_SECRET": "ignored"}))
    for key in ("PAYKEEPER_URL", "PAYKEEPER_USER", "PAYKEEPER_PASSWORD", "PORT", "JWT_SECRET"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("BACKGROUND_TASKS", "false")

    config = StoreConfig.load(env_file=env_file, settings_file=settings)

    assert config.paykeeper_url == "https://pay.test"
    assert config.paykeeper_configured
    assert config.port == 4000
    assert config.payment_check_interval_minutes == 5
    assert config.jwt_secret == StoreConfig.jwt_secret
    assert config.background_tasks is False
    assert not config.smtp_configured
