# ============================================================================
# FILE: tests/hl7_samples.py
# ============================================================================
"""
HL7 v2 sample messages shared by the unit tests.

Messages are built segment by segment from {field number: value} maps so
that every test reads the field positions it depends on.
"""

from typing import Dict

MSH = "MSH|^~\\&|LAB|STATE_DOH^2.16.840.1.114222.4.1.1^ISO|PHINCDS|CDC|20230615143000||ORU^R01^ORU_R01|MSG00001|P|2.5.1"


def build_segment(name: str, fields: Dict[int, str]) -> str:
    """``name|f1|f2|...`` with blanks for every field not in ``fields``."""
    last = max(fields) if fields else 0
    return "|".join([name] + [fields.get(i, "") for i in range(1, last + 1)])


def build_message(*segments: str) -> str:
    return "\r".join((MSH,) + segments)


def obx(set_id: int, value_type: str, code: str, value: str, sub_id: str = "", **extra: str) -> str:
    """OBX with OBX-11 = F unless overridden via ``f11=...``."""
    fields = {1: str(set_id), 2: value_type, 3: code, 4: sub_id, 5: value, 11: "F"}
    for key, val in extra.items():
        fields[int(key[1:])] = val
    return build_segment("OBX", fields)


MINIMAL_OBR = build_segment("OBR", {1: "1", 3: "12345^Disease^LN", 4: "68991-9^Epidemiologic Information^LN"})

MINIMAL_PID = build_segment("PID", {
    1: "1",
    3: "LOCAL-123^^^STATE&2.16.840.1.114222&ISO",
    5: "Doe^Jane^Q",
    7: "19900101",
    8: "M",
    11: "123 Peachtree St^^Atlanta^GA^30333^USA^^^13121",
    13: "^PRN^PH^^1^404^5551234",
})

FULL_OBR = build_segment("OBR", {
    1: "1",
    3: "CAS-2023-001^STATE^2.16.840.1.114222.4.1.1^ISO",
    4: "68991-9^Epidemiologic Information^LN",
    7: "20230614",
    25: "F",
    31: "10140^Measles^NND",
})

FULL_PID = build_segment("PID", {
    1: "1",
    3: "LOCAL-456^^^STATE&2.16.840.1.114222&ISO",
    5: "Roe^Richard",
    7: "19850312",
    8: "F",
    10: "2106-3^White^CDCREC~2054-5^Black or African American^CDCREC",
    11: "^^Savannah^GA^31401^USA^^^13051",
    22: "2186-5^Not Hispanic or Latino^CDCREC",
    29: "20230620",
})

FULL_OBX = [
    obx(1, "CWE", "77989-2^Transmission Mode^LN", "416380006^Airborne transmission^SCT"),
    obx(2, "ST", "77981-9^Outbreak Name^LN", "OUTBREAK-7"),
    obx(3, "CWE", "77984-3^Country of Exposure^LN", "USA^United States^ISO3166_1", sub_id="1"),
    obx(4, "CWE", "77985-0^State of Exposure^LN", "13^Georgia^FIPS5_2", sub_id="1"),
    obx(5, "ST", "77986-8^City of Exposure^LN", "Atlanta", sub_id="1"),
    obx(6, "CWE", "77984-3^Country of Exposure^LN", "MEX^Mexico^ISO3166_1", sub_id="2"),
    obx(7, "ST", "77986-8^City of Exposure^LN", "Tijuana", sub_id="2"),
    obx(8, "ST", "77997-5^Legacy Case ID^LN", "LEG-99"),
    obx(9, "CWE", "77982-7^Imported Indicator^LN", "C1512888^International^UMLS"),
    obx(10, "CWE", "INV153^Imported Country^PHINQUESTION", "MEX^Mexico^ISO3166_1"),
    obx(11, "ST", "INV155^Imported City^PHINQUESTION", "Tijuana"),
    obx(12, "CWE", "77988-4^Binational Criteria^LN", "PHC1140^Exposure in other country^CDCPHINVS"),
    obx(13, "TS", "11368-8^Illness Onset Date^LN", "20230601"),
    obx(14, "TS", "77976-9^Illness End Date^LN", "20230610"),
    obx(15, "CWE", "78746-5^Country of Birth^LN", "USA^United States^ISO3166_1"),
    obx(16, "ST", "21842-0^Birthplace Other^LN", "Born at sea"),
    obx(
        17, "SN", "2345-7^Glucose^LN", "^42.5",
        f6="mg/dL^milligrams per deciliter^UCUM",
        f7="70-99",
        f8="H^High^HL70078",
        f14="20230614080000",
        f23="Acme Lab^L^ORG01",
        f24="123 Main St&Suite 4^^Atlanta^GA^30333",
        f25="12345^Smith^John^^Jr^Dr^^^NPI&2.16.840.1.113883.4.6&ISO",
    ),
    obx(18, "NM", "5902-2^Prothrombin time^LN", "not done"),
    obx(19, "XYZ", "99999-9^Unknown Type^LN", "mystery"),
]

FULL_SPM = build_segment("SPM", {
    1: "1",
    2: "SP-001^LAB",
    4: "119297000^Blood specimen^SCT",
    7: "28520004^Venipuncture^SCT",
    8: "368209003^Right arm^SCT",
    12: "5^mL&milliliter&UCUM",
    17: "20230614080000",
    18: "20230614120000",
})
