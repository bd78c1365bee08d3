import pytest

from mindspace.models.forum import (
    Category,
    Comment,
    ForumValidationError,
    Post,
    generate_object_id,
    is_valid_object_id,
)


def _post(**overrides):
    fields = {
        "title": "Feeling overwhelmed with finals",
        "content": "Exams start next week and I cannot focus.",
        "author": "Jane",
        "avatar": "JA",
        "category": "Academic Stress",
    }
    fields.update(overrides)
    return Post(**fields)


def test_post_fields_are_trimmed():
    post = _post(title="   Feeling overwhelmed with finals   ", author="  Jane ")
    assert post.title == "Feeling overwhelmed with finals"
    assert post.author == "Jane"


@pytest.mark.parametrize(
    "field,value",
    [
        ("title", "Too short"),
        ("title", "x" * 201),
        ("title", "   padded    "),
        ("content", "Only nineteen chars"),
        ("content", "y" * 2001),
        ("title", None),
        ("author", "   "),
        ("avatar", ""),
    ],
)
def test_post_rejects_invalid_fields(field, value):
    with pytest.raises(ForumValidationError):
        _post(**{field: value})


def test_post_length_bounds_are_inclusive():
    post = _post(title="t" * 10, content="c" * 2000)
    assert len(post.title) == 10
    assert len(post.content) == 2000


def test_category_accepts_enum_values_only():
    assert _post(category="Sleep Issues").category is Category.SLEEP_ISSUES
    assert _post(category=Category.ANXIETY).category is Category.ANXIETY

    with pytest.raises(ForumValidationError):
        _post(category="Gaming")
    with pytest.raises(ForumValidationError):
        _post(category=None)


def test_category_enumeration_has_nine_values():
    assert [c.value for c in Category] == [
        "Academic Stress",
        "Anxiety",
        "Depression",
        "Sleep Issues",
        "Social Life",
        "Relationship",
        "Self Care",
        "Study Tips",
        "General Support",
    ]


def test_tags_are_trimmed_and_ordered():
    post = _post(tags=["  sleep ", "exams", "stress  "])
    assert post.tags == ["sleep", "exams", "stress"]
    assert [row.position for row in post.tag_rows] == [0, 1, 2]


def test_likes_cannot_go_negative():
    post = _post()
    with pytest.raises(ForumValidationError):
        post.likes = -1


def test_comment_content_bounds():
    assert Comment(content="  thanks  ", author="Sam", avatar="SA").content == "thanks"

    with pytest.raises(ForumValidationError):
        Comment(content="hey", author="Sam", avatar="SA")
    with pytest.raises(ForumValidationError):
        Comment(content="z" * 501, author="Sam", avatar="SA")


def test_object_ids_are_unique_and_well_formed():
    ids = [generate_object_id() for _ in range(1000)]
    assert len(set(ids)) == len(ids)
    assert all(is_valid_object_id(value) for value in ids)


@pytest.mark.parametrize(
    "value",
    ["", None, "123", "zzzzzzzzzzzzzzzzzzzzzzzz", "65a1f0c2e4b0a1b2c3d4e5f", "65a1f0c2e4b0a1b2c3d4e5f67"],
)
def test_invalid_object_ids(value):
    assert not is_valid_object_id(value)


def test_uppercase_object_id_is_valid():
    assert is_valid_object_id("65A1F0C2E4B0A1B2C3D4E5F6")
