"""Tests for ColumnMapping."""

from bankimport.domain.column_mapping import AmountInterpretation, ColumnMapping


def _single_column_mapping() -> ColumnMapping:
    mapping = ColumnMapping(date_column="Date", description_column="Description", date_format="%d/%m/%Y")
    mapping.use_amount_column("Amount")
    return mapping


class TestCompleteness:
    """Tests for is_complete and missing_fields."""

    def test_empty_mapping_is_incomplete(self):
        """A new mapping reports every required field missing."""
        mapping = ColumnMapping()

        assert not mapping.is_complete()
        assert mapping.missing_fields() == ["date", "description", "amount", "date_format"]

    def test_single_amount_column_complete(self):
        """Date, description, amount and date format make a complete mapping."""
        mapping = _single_column_mapping()

        assert mapping.is_complete()
        assert mapping.missing_fields() == []
        assert not mapping.has_separate_amount_columns()

    def test_separate_columns_require_both(self):
        """Separate columns need both income and expense set."""
        mapping = ColumnMapping(date_column="Date", description_column="Description", date_format="%d/%m/%Y")
        mapping.separate_amount_columns = True
        mapping.income_column = "Money in"

        assert not mapping.is_complete()
        assert mapping.missing_fields() == ["expense"]

        mapping.expense_column = "Money out"
        assert mapping.is_complete()
        assert mapping.has_separate_amount_columns()

    def test_blank_values_count_as_missing(self):
        """Whitespace-only column names are not a mapping."""
        mapping = _single_column_mapping()
        mapping.description_column = "   "

        assert not mapping.is_complete()
        assert mapping.missing_fields() == ["description"]

    def test_missing_date_format(self):
        """Date format is part of completeness."""
        mapping = _single_column_mapping()
        mapping.date_format = None

        assert mapping.missing_fields() == ["date_format"]

    def test_switching_amount_mode(self):
        """Switching to a single column ignores stale separate columns."""
        mapping = ColumnMapping(date_column="Date", description_column="Description", date_format="%d/%m/%Y")
        mapping.use_separate_columns("In", "Out")
        mapping.use_amount_column("Amount")

        assert mapping.is_complete()
        assert not mapping.has_separate_amount_columns()
        assert mapping.mapped_columns() == ["Date", "Description", "Amount"]


class TestMappingEditing:
    """Tests for copy, apply and reset."""

    def test_copy_is_independent(self):
        """Copies do not share state."""
        mapping = _single_column_mapping()
        clone = mapping.copy()
        clone.amount_column = "Other"

        assert mapping.amount_column == "Amount"
        assert clone == ColumnMapping(
            date_column="Date",
            description_column="Description",
            date_format="%d/%m/%Y",
            amount_column="Other",
        )

    def test_apply_overwrites_all_fields(self):
        """apply copies every field from the other mapping."""
        mapping = ColumnMapping()
        source = _single_column_mapping()
        source.amount_interpretation = AmountInterpretation.INVERTED
        source.reference_column = "Ref"

        mapping.apply(source)

        assert mapping == source

    def test_reset(self):
        """reset returns the mapping to its empty state."""
        mapping = _single_column_mapping()
        mapping.reset()

        assert mapping == ColumnMapping()

    def test_mapped_columns_separate(self):
        """mapped_columns lists the CSV columns in canonical order."""
        mapping = ColumnMapping(date_column="Date", description_column="Description", category_column="Category")
        mapping.use_separate_columns("Money in", "Money out")

        assert mapping.mapped_columns() == ["Date", "Description", "Money in", "Money out", "Category"]
