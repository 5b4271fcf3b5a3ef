from prep_tutor.db import init_db, get_connection
from prep_tutor.seed import is_seeded, load_content, seed_all, seed_items


def test_load_content_has_every_subject():
    content = load_content()
    assert set(content) == {"math", "english", "vocabulary"}
    for items in content.values():
        assert items
        for item in items:
            if item.get("kind") == "multiple_choice":
                assert item["correct_answer"] in item["choices"]


def test_is_seeded(tmp_db):
    init_db(tmp_db)
    assert not is_seeded(tmp_db)
    seed_items(tmp_db, "math", [{"id": "m1", "prompt": "1 + 1?", "correct_answer": "2"}])
    assert is_seeded(tmp_db)


def test_seed_items_stores_hints_in_order(tmp_db):
    init_db(tmp_db)
    seed_items(tmp_db, "math", [{
        "id": "m1", "kind": "numeric", "prompt": "1 + 1?", "correct_answer": "2",
        "hints": ["count", "use fingers"],
    }])
    conn = get_connection(tmp_db)
    hints = conn.execute(
        "SELECT hint FROM item_hints WHERE item_id = 'm1' ORDER BY position"
    ).fetchall()
    item = conn.execute("SELECT * FROM items WHERE id = 'm1'").fetchone()
    conn.close()
    assert [h["hint"] for h in hints] == ["count", "use fingers"]
    assert item["kind"] == "numeric"
    assert item["subject"] == "math"


def test_seed_all(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    conn = get_connection(tmp_db)
    counts = dict(conn.execute("SELECT subject, COUNT(*) FROM items GROUP BY subject").fetchall())
    conn.close()
    assert counts == {"math": 8, "english": 4, "vocabulary": 8}


def test_seed_all_idempotent(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    seed_all(tmp_db)  # second call should be no-op
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM items").fetchone()[0] == 20
    assert conn.execute("SELECT COUNT(*) FROM item_hints").fetchone()[0] == 16
    conn.close()
