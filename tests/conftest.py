import pytest
from doctype_ui.metadata.base import InMemoryMetadataSource
from sample_schemas import sales_order_item_schema, sales_order_schema, task_schema


@pytest.fixture
def schemas():
    return {
        "Task": task_schema(),
        "Sales Order": sales_order_schema(),
        "Sales Order Item": sales_order_item_schema(),
    }


@pytest.fixture
def source(schemas):
    return InMemoryMetadataSource(schemas)
