from unittest.mock import MagicMock

import pytest
import requests

from taxomatch.canonicalizer import canonicalize
from taxomatch.exceptions import MissingApiKeyError, SourceUnavailableError
from taxomatch.sources.algaebase import AlgaeBaseClient, AlgaeBaseSource
from taxomatch.types.data_classes import SourceId

BASE_URL = "https://api.algaebase.test/v1.3"


def _response(status_code=200, payload=None, invalid_json=False):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    if invalid_json:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = payload
    return response


def _client(*responses):
    session = requests.Session()
    session.get = MagicMock(side_effect=list(responses))
    return AlgaeBaseClient(api_key="secret", base_url=BASE_URL, timeout=5, session=session)


SPECIES_PAYLOAD = {
    "_pagination": {"_total_number_of_results": 1},
    "result": [{
        "dwc:genus": "Alexandrium",
        "dwc:specificEpithet": "minutum",
        "dwc:scientificName": "Alexandrium minutum Halim",
        "dwc:scientificNameID": 52,
        "dwc:acceptedNameUsageID": 52,
        "dcterms:modified": "2020-05-12",
    }],
}


class TestAuthentication:

    def test_missing_api_key(self, monkeypatch):
        from taxomatch.config import config
        monkeypatch.setattr(config, "algaebase_api_key", "")
        with pytest.raises(MissingApiKeyError):
            AlgaeBaseClient()

    def test_key_sent_as_header(self):
        client = _client()
        assert client.session.headers["abapikey"] == "secret"

    def test_key_from_config(self, monkeypatch):
        from taxomatch.config import config
        monkeypatch.setattr(config, "algaebase_api_key", "from-env")
        client = AlgaeBaseClient(session=requests.Session())
        assert client.api_key == "from-env"


class TestSearch:

    def test_species_search_strips_prefixes(self):
        client = _client(_response(payload=SPECIES_PAYLOAD))
        records = client.search_species("Alexandrium minutum", count=20)

        assert records == [{
            "genus": "Alexandrium",
            "specificEpithet": "minutum",
            "scientificName": "Alexandrium minutum Halim",
            "scientificNameID": 52,
            "acceptedNameUsageID": 52,
            "modified": "2020-05-12",
        }]
        client.session.get.assert_called_once_with(
            f"{BASE_URL}/species",
            params={"scientificname": "Alexandrium minutum", "offset": 0, "count": 20},
            timeout=5,
        )

    def test_creator_search_uses_begins_with(self):
        client = _client(_response(payload={"result": []}))
        client.species_by_creator("M.D. Guiry")

        params = client.session.get.call_args.kwargs["params"]
        assert params["creator"] == "[bw]M.D. Guiry"
        assert params["count"] == 100000

    def test_not_found_is_empty(self):
        client = _client(_response(status_code=404))
        assert client.search_species("Nonexistus fakeus") == []

    @pytest.mark.parametrize("response", [
        _response(status_code=500),
        _response(status_code=401),
        _response(invalid_json=True),
        _response(payload=["not", "a", "dict"]),
    ])
    def test_bad_responses_raise(self, response):
        client = _client(response)
        with pytest.raises(SourceUnavailableError):
            client.search_genus("Alexandrium")

    def test_transport_error_raises(self):
        client = _client(requests.ConnectionError("connection refused"))
        with pytest.raises(SourceUnavailableError) as excinfo:
            client.search_species("Alexandrium minutum")
        assert excinfo.value.source == "AlgaeBase"


class TestSpeciesById:

    def test_nested_details_are_flattened(self):
        payload = {
            "id": 52,
            "details": {"dwc:genus": "Alexandrium", "dwc:specificEpithet": "minutum"},
        }
        client = _client(_response(payload=payload))
        record = client.species_by_id(52)

        assert record == {"id": 52, "genus": "Alexandrium", "specificEpithet": "minutum"}
        assert client.session.get.call_args.args[0] == f"{BASE_URL}/species/52"

    def test_unknown_id(self):
        client = _client(_response(status_code=404))
        assert client.species_by_id(999) is None


class TestGenusClassification:

    def test_prefers_exact_genus_record(self):
        payload = {"result": [
            {"dwc:genus": "Alexandriella", "dwc:kingdom": "Plantae"},
            {
                "dwc:genus": "Alexandrium",
                "dwc:kingdom": "Chromista",
                "dwc:phylum": "Myzozoa",
                "dwc:class": "Dinophyceae",
                "dwc:order": "Gonyaulacales",
                "dwc:family": "Ostreopsidaceae",
            },
        ]}
        client = _client(_response(payload=payload))
        classification = client.genus_classification("Alexandrium")

        assert classification.genus == "Alexandrium"
        assert classification.kingdom == "Chromista"
        assert classification.class_ == "Dinophyceae"
        assert classification.family == "Ostreopsidaceae"

    def test_falls_back_to_first_record(self):
        payload = {"result": [{"dwc:genus": "Alexandriella", "dwc:kingdom": "Plantae", "dwc:family": ""}]}
        client = _client(_response(payload=payload))
        classification = client.genus_classification("Alexandrium")

        assert classification.kingdom == "Plantae"
        assert classification.family is None

    def test_unknown_genus(self):
        client = _client(_response(payload={"result": []}))
        assert client.genus_classification("Unknownia") is None


class TestAlgaeBaseSource:

    def test_species_candidates_are_canonical(self):
        client = _client(_response(payload=SPECIES_PAYLOAD))
        candidates = AlgaeBaseSource(client).candidates(canonicalize("Alexandrium minutum"))

        assert [c.name for c in candidates] == ["Alexandrium minutum"]
        assert candidates[0].source_id is SourceId.ALGAEBASE_SPECIES
        assert candidates[0].attributes["scientificNameID"] == 52

    def test_genus_names_use_genus_endpoint(self):
        client = _client(_response(payload={"result": [{"dwc:scientificName": "Alexandrium Halim"}]}))
        candidates = AlgaeBaseSource(client).candidates(canonicalize("Alexandrium"))

        assert client.session.get.call_args.args[0] == f"{BASE_URL}/genus"
        assert candidates[0].name == "Alexandrium"
        assert candidates[0].source_id is SourceId.ALGAEBASE_GENUS
