"""Shared fixtures: an in-process MongoDB and the sample schema."""

import mongomock
import pytest

from typed_crud import Schema, ServiceConfig
from typed_crud.parsing import SchemaParser

SAMPLE_SCHEMA = """
# Embedded sub-record
schema Child {
    name: string,
    age: number,
}

model Sample {
    name: string,
    age: number,
    married: boolean,
    birthday: date,
    tags: string[],
    subDoc: Child,
    children: Child[],
    relatedModels: ref RelatedModel[],
    bestFriend: ref RelatedModel,
    virtual virtualRelatedModels: RelatedModel[] by model,
    virtual firstRelatedModel: RelatedModel by model,
}

model RelatedModel {
    name: string,
    model: ref Sample,
}
"""


@pytest.fixture
def database():
    """An empty mongomock database."""
    client = mongomock.MongoClient()
    yield client["typed_crud_test"]
    client.close()


@pytest.fixture
def registry():
    """Registry parsed from the sample schema."""
    return SchemaParser().parse(SAMPLE_SCHEMA)


@pytest.fixture
def schema(database):
    """Sample schema bound to the mongomock database."""
    return Schema.parse(SAMPLE_SCHEMA, database, health_check=lambda: True)


@pytest.fixture
def samples(schema):
    """Service for the Sample model."""
    return schema.service("Sample")


@pytest.fixture
def related(schema):
    """Service for the RelatedModel model."""
    return schema.service("RelatedModel")


@pytest.fixture
def people(samples):
    """Three stored samples: Juan Pablo (33), Juan Diego (33), Jorge Eduardo (29)."""
    return [
        samples.insert({"name": name, "age": age, "married": married}).response
        for name, age, married in [
            ("Juan Pablo", 33, True),
            ("Juan Diego", 33, False),
            ("Jorge Eduardo", 29, True),
        ]
    ]


@pytest.fixture
def unchecked_config():
    """Config that skips the connection-health check."""
    return ServiceConfig(check_connection=False)
