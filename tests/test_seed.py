from aidevelo import seed
from aidevelo.chat.models import KnowledgeBase


def test_seed_demo_creates_active_chat_config(storage):
    cfg = seed.seed_demo(storage)
    stored = storage.get_agent_config(cfg.id)
    assert stored is not None
    assert stored.module_id == "chat"
    assert stored.is_active
    assert KnowledgeBase.from_raw(stored.knowledge_base).company_info == "AIDevelo.AI"


def test_seed_cli_in_memory(monkeypatch, capsys):
    monkeypatch.delenv("DB_URL", raising=False)
    monkeypatch.setattr("sys.argv", ["seed", "--with-session"])
    seed.main()
    out = capsys.readouterr().out
    assert "[seed] chat agent config:" in out
    assert "[seed] chat session:" in out
