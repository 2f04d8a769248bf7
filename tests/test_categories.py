import pytest

from expense_tracker.exceptions import NotFoundError, ReferentialIntegrityError, ValidationError
from expense_tracker.models.category import Category
from expense_tracker.services import categories as category_service


def _names(nodes):
    return [n["name"] for n in nodes]


def test_tree_nests_children_under_parents(db):
    food = category_service.create_category(db, name="Food")
    travel = category_service.create_category(db, name="Travel")
    category_service.create_category(db, name="Lunch", parent_id=food.id)
    category_service.create_category(db, name="Dinner", parent_id=food.id)
    category_service.create_category(db, name="Flights", parent_id=travel.id)

    tree = category_service.list_categories(db)

    assert _names(tree) == ["Food", "Travel"]
    assert _names(tree[0]["subcategories"]) == ["Dinner", "Lunch"]
    assert _names(tree[1]["subcategories"]) == ["Flights"]
    assert tree[1]["subcategories"][0]["subcategories"] == []


def test_orphans_are_listed_as_roots(db):
    orphan = Category(name="Orphan", parent_id="missing-parent")
    db.add(orphan)
    db.commit()

    tree = category_service.list_categories(db)

    assert _names(tree) == ["Orphan"]
    assert category_service.get_category(db, orphan.id).name == "Orphan"


def test_parent_cycle_keeps_every_category(db):
    db.add_all([
        Category(id="a", name="A", parent_id="b"),
        Category(id="b", name="B", parent_id="a"),
        Category(id="c", name="C"),
    ])
    db.commit()

    tree = category_service.list_categories(db)

    assert _names(tree) == ["A", "C"]
    assert _names(tree[0]["subcategories"]) == ["B"]
    assert tree[0]["subcategories"][0]["subcategories"] == []


def test_build_tree_from_plain_objects():
    rows = [
        Category(id="a", name="Alpha"),
        Category(id="b", name="beta", parent_id="a"),
        Category(id="c", name="Self", parent_id="c"),
    ]
    tree = category_service.build_category_tree(rows)
    assert _names(tree) == ["Alpha", "Self"]
    assert tree[0]["subcategories"][0]["id"] == "b"


def test_create_requires_a_name(db):
    with pytest.raises(ValidationError) as exc:
        category_service.create_category(db, name="   ")
    assert exc.value.message == "Category name is required"


def test_create_defaults_color(db):
    category = category_service.create_category(db, name="Office")
    assert category.color == "#6366F1"


def test_create_with_unknown_parent(db):
    with pytest.raises(NotFoundError):
        category_service.create_category(db, name="Child", parent_id="nope")


def test_update_rejects_cycles(db):
    parent = category_service.create_category(db, name="Parent")
    child = category_service.create_category(db, name="Child", parent_id=parent.id)

    with pytest.raises(ValidationError):
        category_service.update_category(db, parent.id, {"parent_id": child.id})
    with pytest.raises(ValidationError):
        category_service.update_category(db, parent.id, {"parent_id": parent.id})


def test_update_changes_fields(db):
    category = category_service.create_category(db, name="Misc")
    updated = category_service.update_category(db, category.id, {"name": "Other", "color": "#000000"})
    assert updated.name == "Other"
    assert updated.color == "#000000"


def test_delete_blocked_while_in_use(db, basic_user, travel, make_expense):
    make_expense(basic_user, travel)

    with pytest.raises(ReferentialIntegrityError) as exc:
        category_service.delete_category(db, travel.id)
    assert exc.value.status_code == 400
    assert db.query(Category).filter(Category.id == travel.id).first() is not None


def test_delete_unused_category(db, travel):
    category_service.delete_category(db, travel.id)
    assert db.query(Category).count() == 0


def test_delete_missing_category(db):
    with pytest.raises(NotFoundError):
        category_service.delete_category(db, "nope")


def test_seed_only_into_empty_table(db):
    assert category_service.seed_default_categories(db) == len(category_service.DEFAULT_CATEGORIES)
    assert category_service.seed_default_categories(db) == 0
