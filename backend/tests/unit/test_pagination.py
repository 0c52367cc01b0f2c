from socialcore.domain.common.pagination import window


def test_window_clamps_limit_and_page():
    win = window(0, 500, default=20, maximum=100)
    assert win.page == 1
    assert win.limit == 100
    assert win.offset == 0


def test_window_defaults_when_missing():
    win = window(None, None, default=20, maximum=100)
    assert (win.page, win.limit) == (1, 20)


def test_page_info_counts_from_offset():
    win = window(2, 10, default=20, maximum=100)
    assert win.offset == 10
    info = win.info(total=25, returned=10)
    assert info.has_more is True
    assert info.total_pages == 3
    last = window(3, 10, default=20, maximum=100).info(total=25, returned=5)
    assert last.has_more is False
