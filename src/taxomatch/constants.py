"""Constants shared across TaxoMatch.

Reference source labels, default thresholds, endpoint URLs and the stable
column layouts of the output tables live here so that every module agrees on
them.
"""

# Values treated as missing when they appear in upstream tables or API payloads
INVALID_VALUES = {"", "na", "n/a", "nan", "null", "none", "unknown"}

# Order in which the default correction cascade consults its sources
DEFAULT_SOURCE_PRECEDENCE = ["Dyntaxa", "Nordic", "WoRMS"]

# Maximum Levenshtein distance for the checklist correction cascade
DEFAULT_CORRECTION_THRESHOLD = 4.5

# Maximum Levenshtein distance between a query and an AlgaeBase record
DEFAULT_RECORD_THRESHOLD = 1.5

# Candidate column names holding the scientific name in checklist tables
NAME_COLUMN_CANDIDATES = ("ScientificName", "scientific_name", "scientificName", "scientificname", "name")

# Prefixes AlgaeBase puts in front of Darwin Core field names
FIELD_NAME_PREFIXES = ("details.dwc:", "details.dcterms:", "details.", "dwc:", "dcterms:")

# Nomenclatural rank markers, mapped to their canonical spelling
RANK_MARKERS = {
    "var.": "var.",
    "var": "var.",
    "subsp.": "subsp.",
    "subsp": "subsp.",
    "ssp.": "subsp.",
    "ssp": "subsp.",
    "f.": "f.",
    "f": "f.",
    "fo.": "f.",
    "forma": "f.",
}

# Informal qualifiers dropped from canonical names
INFORMAL_QUALIFIERS = {
    "cf.", "cf", "aff.", "aff", "sp.", "sp", "spp.", "spp", "indet.", "×", "x",
    "s.l.", "s.lat.", "s.str.", "s.s.", "auct.", "auct",
}

# Lowercase words that start or continue an authorship string
AUTHOR_PARTICLES = {
    "de", "da", "del", "della", "der", "den", "des", "di", "du",
    "la", "le", "van", "von", "ex", "et", "al.", "in", "&", "emend.", "nom.",
    "sensu",
}

# Linnaean ranks above genus, in descending order
HIGHER_RANKS = ["kingdom", "phylum", "class", "order", "family"]

# Endpoints
ALGAEBASE_BASE_URL = "https://api.algaebase.org/v1.3"
WORMS_BASE_URL = "https://www.marinespecies.org/rest"
DYNTAXA_BIOTA_URL = "https://raw.githubusercontent.com/sharksmhi/SHARK4R/master/inst/extdata/dyntaxa_Biota.txt"
NORDIC_MICROALGAE_URL = "https://data.smhi.se/oce/SLW/checklists/2024-04-04/nordicmicroalgae_checklist_2024_apr_04.txt"
HABS_TAXLIST_URL = "https://www.marinespecies.org/hab/aphia.php?p=export&what=taxlist"

# Ranks kept from the HABs taxonomic list
HABS_TAXON_RANKS = ["Species", "Variety", "Forma"]

# Output layouts
CORRECTION_QUERY_COLUMN = "reported_ScientificName"
CORRECTION_COLUMN_PREFIX = "corrected_ScientificName"

NAME2ID_COLUMNS = ["raw_name", "scientificNameID", "acceptedNameUsageID"]

SPECIES_RECORD_COLUMNS = [
    "parse_name",
    "genus",
    "specificEpithet",
    "infraspecificRank",
    "infraspecificEpithet",
    "scientificName",
    "scientificNameID",
    "acceptedNameUsageID",
    "needsTaxoUpdate",
    "ambiguousRank",
    "kingdom",
    "phylum",
    "class",
    "order",
    "family",
]
