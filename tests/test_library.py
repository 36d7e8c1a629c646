from novabook.library import Library
from novabook.ui_helpers import BOOK_COLUMNS, print_list_result, print_stats_result, set_output_mode


def test_statistics_on_empty_library(lib):
    assert lib.get_statistics() == {
        "total_titles": 0,
        "total_copies": 0,
        "total_members": 0,
        "active_loans": 0,
        "overdue_loans": 0,
    }


def test_statistics_track_loans(lib, clock):
    ulysses = lib.books.add_book("9780199535675", "Ulysses", "James Joyce", initial_stock=2)
    dubliners = lib.books.add_book("9780140186475", "Dubliners", "James Joyce", initial_stock=1)
    member = lib.members.register_member("Leopold Bloom")

    lib.loans.create_loan(member.id, ulysses.id)
    lib.loans.create_loan(member.id, dubliners.id, loan_period_days=3)
    clock.advance(5)

    stats = lib.get_statistics()
    assert stats["total_titles"] == 2
    assert stats["total_copies"] == 1
    assert stats["total_members"] == 1
    assert stats["active_loans"] == 2
    assert stats["overdue_loans"] == 1


def test_library_reuses_existing_database(lib, clock):
    lib.members.register_member("Molly Bloom")

    again = Library(db_file=lib.db_file, today=clock)
    assert [m.name for m in again.members.get_all_members()] == ["Molly Bloom"]


def test_rich_output_mode(lib, monkeypatch, capsys):
    monkeypatch.setenv("NOVABOOK_CLI_OUTPUT", "plain")
    lib.books.add_book("9780199535675", "Ulysses", "James Joyce")

    set_output_mode("rich")
    print_list_result(lib.books.get_all_books(), BOOK_COLUMNS, "Books", "No books in library.")
    print_stats_result(lib.get_statistics())
    out = capsys.readouterr().out
    assert "Ulysses" in out
    assert "Total Titles" in out

    # unknown modes are ignored
    set_output_mode("xml")
    print_stats_result(lib.get_statistics())
    assert "Total Titles: 1" in capsys.readouterr().out
