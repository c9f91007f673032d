import warnings

import pytest

from taxomatch.exceptions import AmbiguousRankWarning
from taxomatch.reconstructor import display_name, infraspecific_slot, reconstruct
from taxomatch.types.data_classes import InfraspecificRank


class TestDisplayName:

    def test_variety(self):
        record = reconstruct({"genus": "Azadinium", "specificEpithet": "spinifera", "variety": "concinnum"})
        assert record.scientific_name == "Azadinium spinifera var. concinnum"
        assert record.infraspecific_rank is InfraspecificRank.VARIETY
        assert record.infraspecific_epithet == "concinnum"

    def test_binomial_without_infraspecific_epithet(self):
        record = reconstruct({"genus": "Azadinium", "specificEpithet": "spinifera"})
        assert record.scientific_name == "Azadinium spinifera"
        assert record.infraspecific_rank is InfraspecificRank.NONE
        assert record.infraspecific_epithet is None

    @pytest.mark.parametrize("field,expected", [
        ("infraspecificEpithet_forma", "Dinophysis acuta f. lata"),
        ("infraspecificEpithet_subspecies", "Dinophysis acuta subsp. lata"),
        ("infraspecificEpithet_variety", "Dinophysis acuta var. lata"),
    ])
    def test_each_rank_marker(self, field, expected):
        record = reconstruct({"genus": "Dinophysis", "specificEpithet": "acuta", field: "lata"})
        assert record.scientific_name == expected

    def test_prefixed_field_names(self):
        record = reconstruct({
            "dwc:genus": "Alexandrium",
            "dwc:specificEpithet": "minutum",
            "dwc:scientificNameID": "52",
            "dwc:acceptedNameUsageID": "52",
            "dcterms:modified": "2020-01-01",
        })
        assert record.scientific_name == "Alexandrium minutum"
        assert record.scientific_name_id == "52"
        assert record.attributes["modified"] == "2020-01-01"

    def test_nested_details_fields(self):
        record = reconstruct({
            "id": 52,
            "details": {"dwc:genus": "Alexandrium", "dwc:specificEpithet": "minutum"},
        })
        assert record.scientific_name == "Alexandrium minutum"
        assert record.attributes["id"] == 52

    def test_empty_strings_count_as_missing(self):
        record = reconstruct({
            "genus": "Azadinium",
            "specificEpithet": "spinifera",
            "infraspecificEpithet_variety": "",
            "infraspecificEpithet_forma": "NA",
        })
        assert record.scientific_name == "Azadinium spinifera"
        assert not record.ambiguous_rank

    def test_falls_back_to_upstream_name(self):
        record = reconstruct({"scientificName": "Alexandrium minutum Halim 1960"})
        assert record.scientific_name == "Alexandrium minutum"

    def test_unset_when_nothing_to_build_from(self):
        record = reconstruct({"genus": None, "specificEpithet": ""})
        assert record.scientific_name is None

    def test_authored_name_kept_as_attribute(self):
        record = reconstruct({
            "genus": "Alexandrium",
            "specificEpithet": "minutum",
            "scientificName": "Alexandrium minutum Halim",
            "acceptedNameUsage": "Alexandrium minutum Halim",
        })
        assert record.attributes["scientificNamewithAuthorship"] == "Alexandrium minutum Halim"
        assert record.attributes["acceptedNameUsagewithAuthorship"] == "Alexandrium minutum Halim"
        assert "scientificName" not in record.attributes


class TestAmbiguousRank:

    def test_multiple_slots_warn_and_fall_back_to_binomial(self):
        fields = {
            "genus": "Dinophysis",
            "specificEpithet": "acuta",
            "infraspecificEpithet_forma": "lata",
            "infraspecificEpithet_variety": "minor",
        }
        with pytest.warns(AmbiguousRankWarning):
            record = reconstruct(fields)

        assert record.ambiguous_rank
        assert record.infraspecific_rank is InfraspecificRank.NONE
        assert record.scientific_name == "Dinophysis acuta"
        assert " f. " not in record.scientific_name and " var. " not in record.scientific_name

    def test_single_slot_does_not_warn(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error", AmbiguousRankWarning)
            record = reconstruct({"genus": "Dinophysis", "specificEpithet": "acuta", "forma": "lata"})
        assert not record.ambiguous_rank

    def test_infraspecific_slot_reports_ambiguity(self):
        rank, epithet, ambiguous = infraspecific_slot({"subspecies": "a", "variety": "b"})
        assert (rank, epithet, ambiguous) == (InfraspecificRank.NONE, None, True)


class TestNeedsTaxoUpdate:

    @pytest.mark.parametrize("name_id,accepted_id,expected", [
        ("52", "52", False),
        ("52", "60", True),
        (52, 52, False),
        ("52", None, True),
        (None, None, False),
    ])
    def test_flag_follows_identifier_mismatch(self, name_id, accepted_id, expected):
        record = reconstruct({
            "genus": "Alexandrium",
            "specificEpithet": "minutum",
            "scientificNameID": name_id,
            "acceptedNameUsageID": accepted_id,
        })
        assert record.needs_taxo_update is expected


def test_display_name_ignores_marker_without_epithet():
    assert display_name("Azadinium", "spinifera", InfraspecificRank.VARIETY, None) == "Azadinium spinifera"


def test_to_dict_uses_output_column_names():
    record = reconstruct({"genus": "Azadinium", "specificEpithet": "spinifera", "variety": "concinnum"})
    row = record.to_dict()
    assert row["specificEpithet"] == "spinifera"
    assert row["infraspecificRank"] == "variety"
    assert row["scientificName"] == "Azadinium spinifera var. concinnum"
