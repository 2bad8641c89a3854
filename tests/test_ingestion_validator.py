"""
Tests for upload validation.
"""

import pytest

from services.errors import UploadRejectedError
from services.ingestion_validator import (
    IngestionValidator, RejectionReason, UploadMetadata, normalize_month, parse_year
)

XLSX = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def meta(**overrides):
    values = {
        'filename': 'sales.xlsx',
        'content_type': XLSX,
        'size': 1024,
        'month': 'march',
        'year': '2025',
    }
    values.update(overrides)
    return UploadMetadata(**values)


class TestCheckOrder:
    """Size is checked before type, type before fields."""

    def test_valid_upload(self):
        assert IngestionValidator().check(meta()) is None

    def test_size_wins_over_everything(self):
        validator = IngestionValidator(max_size_bytes=100)

        rejection = validator.check(meta(size=101, filename='notes.txt', content_type='text/plain', month=None))

        assert rejection.reason == RejectionReason.SIZE

    def test_size_limit_is_inclusive(self):
        assert IngestionValidator(max_size_bytes=100).check(meta(size=100)) is None

    def test_type_before_fields(self):
        rejection = IngestionValidator().check(meta(filename='notes.txt', content_type='text/plain', month=None))

        assert rejection.reason == RejectionReason.TYPE
        assert rejection.message == "Only Excel (.xlsx, .xls) and CSV files are allowed"

    def test_missing_fields(self):
        for missing in ({'month': None}, {'year': None}, {'month': '  '}, {'year': ''}):
            rejection = IngestionValidator().check(meta(**missing))

            assert rejection.reason == RejectionReason.FIELDS
            assert rejection.message == "Month and year are required."

    def test_invalid_month_and_year(self):
        assert IngestionValidator().check(meta(month='smarch')).message == "Invalid month: 'smarch'"
        assert IngestionValidator().check(meta(year='20x5')).message == "Invalid year: '20x5'"


class TestTypeCheck:
    """Extension and content type are alternatives."""

    def test_extension_alone_is_enough(self):
        assert IngestionValidator().check(meta(filename='data.CSV', content_type='text/plain')) is None

    def test_content_type_alone_is_enough(self):
        assert IngestionValidator().check(meta(filename='upload', content_type='text/csv; charset=utf-8')) is None

    def test_neither_matches(self):
        rejection = IngestionValidator().check(meta(filename='report.pdf', content_type='application/pdf'))

        assert rejection.reason == RejectionReason.TYPE

    def test_missing_name_and_type(self):
        rejection = IngestionValidator().check(meta(filename=None, content_type=None))

        assert rejection.reason == RejectionReason.TYPE


class TestValidate:
    """validate() raises with the first rejection."""

    def test_raises_upload_rejected(self):
        with pytest.raises(UploadRejectedError) as exc_info:
            IngestionValidator(max_size_bytes=10).validate(meta(size=11))

        assert exc_info.value.reason == RejectionReason.SIZE
        assert 'exceeds maximum allowed' in exc_info.value.message

    def test_passes_silently(self):
        IngestionValidator().validate(meta())


class TestFieldParsing:
    """Test month and year normalization."""

    def test_normalize_month(self):
        assert normalize_month(' March ') == 'march'
        assert normalize_month('DECEMBER') == 'december'
        assert normalize_month('mar') is None
        assert normalize_month(None) is None

    def test_parse_year(self):
        assert parse_year('2025') == 2025
        assert parse_year(' 1999 ') == 1999
        assert parse_year(2024) == 2024
        assert parse_year('twenty') is None
        assert parse_year(None) is None
        assert parse_year(True) is None

    def test_parse_year_rejects_values_outside_integer_column(self):
        assert parse_year(2147483647) == 2147483647
        assert parse_year(2 ** 31) is None
        assert parse_year(str(2 ** 70)) is None
        assert parse_year(-2 ** 31 - 1) is None
