from messmate.schemas.pagination import paginate


def test_middle_page():
    page = paginate(["c", "d"], total=5, page=1, size=2, mapper=str.upper)

    assert page.content == ["C", "D"]
    assert page.total_pages == 3
    assert page.last_page is False


def test_last_page():
    page = paginate(["e"], total=5, page=2, size=2, mapper=str.upper)

    assert page.total_pages == 3
    assert page.last_page is True


def test_empty_result():
    page = paginate([], total=0, page=0, size=20, mapper=str.upper)

    assert page.content == []
    assert page.total_pages == 0
    assert page.last_page is True


def test_serializes_camel_case():
    page = paginate(["a"], total=1, page=0, size=20, mapper=str.upper)

    assert page.model_dump(by_alias=True) == {
        "content": ["A"],
        "pageNumber": 0,
        "pageSize": 20,
        "totalElements": 1,
        "totalPages": 1,
        "lastPage": True
    }
