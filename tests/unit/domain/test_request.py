import dataclasses

import pytest

from campfin.domain.models.request import ClientRequest, ClientRequestBuilder


def test_builder_collects_query_parameters():
    request = (
        ClientRequestBuilder("2016/candidates/search.json")
        .with_param("query", "Warren")
        .with_param("offset", 20)
        .build()
    )
    assert request.path == "2016/candidates/search.json"
    assert request.params() == {"query": "Warren", "offset": "20"}


def test_none_values_are_kept_in_query_but_not_sent():
    request = ClientRequestBuilder("2016/committees/search.json").with_params({"query": None}).build()
    assert dict(request.query) == {"query": None}
    assert request.params() == {}


def test_request_is_frozen():
    request = ClientRequest(path="2016/filings/types.json")
    with pytest.raises(dataclasses.FrozenInstanceError):
        request.path = "other"
    with pytest.raises(TypeError):
        request.query["offset"] = "20"


def test_request_does_not_see_later_builder_changes():
    builder = ClientRequestBuilder("2016/candidates/search.json").with_param("query", "Warren")
    request = builder.build()
    builder.with_param("query", "Sanders")
    assert request.params() == {"query": "Warren"}
