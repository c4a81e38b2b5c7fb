from entities import analyze_entities, extract_credentials
from evidence import coerce_evidence, mock_evidence_data
from rubric import default_config
from scoring import score_trust_authority

ORG_NODE = {
    "@context": "https://schema.org",
    "@type": "Organization",
    "name": "Example Co",
    "telephone": "512-555-0100",
    "sameAs": ["https://www.linkedin.com/company/example-co"],
    "address": {"@type": "PostalAddress", "streetAddress": "12 Main Street", "addressLocality": "Austin"},
}
PERSON_NODE = {"@type": "Person", "name": "Dana Lee", "jobTitle": "CTO", "worksFor": {"name": "Example Co"}}


def test_schema_entities_and_relationships():
    entities = analyze_entities("", [{"@graph": [ORG_NODE, PERSON_NODE]}])

    assert entities["people"][0]["name"] == "Dana Lee"
    assert entities["people"][0]["jobTitle"] == "CTO"
    assert entities["organizations"][0]["telephone"] == "512-555-0100"
    assert entities["places"][0]["address"]["addressLocality"] == "Austin"

    predicates = {rel["predicate"] for rel in entities["relationships"]}
    assert predicates == {"worksFor", "locatedAt", "sameAs"}

    edges = entities["knowledgeGraph"]["edges"]
    assert {"source": "Dana Lee", "target": "Example Co", "type": "worksFor"} in edges
    assert {"source": "Example Co", "target": "https://www.linkedin.com/company/example-co", "type": "sameAs"} in edges


def test_text_entities():
    entities = analyze_entities("Acme Widgets Inc. ships from 100 Market Street every day.", [])
    assert {"name": "Acme Widgets Inc.", "source": "text"} in entities["organizations"]
    assert entities["places"] == [{"address": {"streetAddress": "100 Market Street"}, "source": "text"}]


def test_geo_metadata_becomes_a_place():
    entities = analyze_entities("", [], geo_region="US-TX", geo_placename="Austin")
    assert entities["places"] == [{"region": "US-TX", "placename": "Austin", "source": "metadata"}]


def test_extract_credentials():
    text = (
        "Dana holds an MBA, is a Certified Public Accountant and a CPA, "
        "and is a Member of the Texas Society."
    )
    credentials = extract_credentials(text)
    assert [c["type"] for c in credentials] == ["degree", "certification", "certification", "membership"]
    assert credentials[-1]["value"] == "Member of the Texas Society"
    assert len(extract_credentials("MBA and MBA again")) == 1


def test_credentials_feed_trust_scoring():
    entities = analyze_entities("Our lead engineer is AWS Certified.", [])
    evidence, _ = coerce_evidence(mock_evidence_data({"entities": entities}))
    subfactors = score_trust_authority(evidence, default_config()).subfactors
    assert subfactors["professionalCertifications"] == 60
