from __future__ import annotations

import logging

from app.core.logging import ExtraFieldsFormatter


def test_extra_fields_are_appended_in_key_order() -> None:
    formatter = ExtraFieldsFormatter(fmt="%(levelname)s %(message)s")
    record = logging.LogRecord("app.test", logging.INFO, __file__, 1, "claim_enquiry_started", None, None)
    record.entity_id = "42"
    record.data_source = "new"

    assert formatter.format(record) == "INFO claim_enquiry_started data_source='new' entity_id='42'"


def test_plain_records_render_unchanged() -> None:
    formatter = ExtraFieldsFormatter(fmt="%(message)s")
    record = logging.LogRecord("app.test", logging.WARNING, __file__, 1, "claims_hub_write_failed", None, None)

    assert formatter.format(record) == "claims_hub_write_failed"
