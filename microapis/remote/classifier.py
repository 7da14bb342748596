"""Document type prediction from extracted text.

Known document signatures are matched locally with regular expressions;
only text matching none of them is sent to the remote API.
"""

import re

import httpx

from microapis.exceptions import RemoteResponseError
from microapis.utils.logger import get_logger

from .client import RemoteTextClient

logger = get_logger(__name__)

UNKNOWN_DOCUMENT = "Unknown Document"

# Ordered: the first matching signature wins.
_SIGNATURES: list[tuple[str, str]] = [
    (
        "Aadhaar",
        r"\b\d{4}\s?\d{4}\s?\d{4}\b|\bAADHAAR\b"
        r"|\bUNIQUE\sIDENTIFICATION\sAUTHORITY\sOF\sINDIA\b|\bENROLLMENT\sNO\b",
    ),
    (
        "PAN",
        r"\b[A-Z]{5}\d{4}[A-Z]\b|\bPERMANENT\sACCOUNT\sNUMBER\b"
        r"|\bINCOME\sTAX\sDEPARTMENT\sINDIA\b",
    ),
    (
        "Driving License",
        r"\bDL\sNO\s*[A-Z]{2}\d{11,13}\b|\bDRIVING\sLICENCE\b"
        r"|\bISSUING\sAUTHORITY\b|\bVALID\sTHRU\b",
    ),
    (
        "Passport",
        r"\b[A-Z]\d{7}\b|\bPASSPORT\sNO\b|\bMINISTRY\sOF\sEXTERNAL\sAFFAIRS\b"
        r"|\bINDIAN\sPASSPORT\b",
    ),
    (
        "Bank Statement",
        r"\bBANK\sSTATEMENT\b|\bA/C\sNO\b.*?\d{9,18}\b"
        r"|\bIFSC\sCODE\b.*?\w{4}\d{7}\b|\bSTATEMENT\sPERIOD\b",
    ),
    (
        "Invoice",
        r"\bINVOICE\sNO\s*\w+\b|\bGSTIN\s*\d{2}[A-Z]{5}\d{4}[A-Z]{1}\d[Z][A-Z\d]\b"
        r"|\bHSN\sCODE\b|\bTAX\sINVOICE\b",
    ),
    (
        "Marksheet",
        r"\bMARK\sSHEET\b|\bROLL\sNO\s*\w+\b|\bBOARD\sOF\s.*\sEXAMINATION\b"
        r"|\bMARKS\sOBTAINED\b",
    ),
    (
        "Voter ID",
        r"\bEPIC\sNO\s*[A-Z]{3}\d{7}\b|\bELECTOR\sPHOTO\sIDENTITY\sCARD\b"
        r"|\bELECTION\sCOMMISSION\sOF\sINDIA\b",
    ),
    (
        "Electricity Bill",
        r"\bELECTRICITY\sBILL\b|\bCONSUMER\sNO\s*\d+\b|\bUNITS\sCONSUMED\b"
        r"|\bBILL\sAMOUNT\b",
    ),
    (
        "Utility Bill",
        r"\b(WATER|GAS)\sBILL\b|\bCONSUMER\sID\s*\w+\b"
        r"|\bBILLING\sPERIOD\s*\d{2}-\d{2}-\d{4}\b",
    ),
    (
        "Birth Certificate",
        r"\bBIRTH\sCERTIFICATE\b|\bREGISTRATION\sNO\s*\w+\b"
        r"|\bDATE\sAND\sPLACE\sOF\sBIRTH\b",
    ),
    (
        "Death Certificate",
        r"\bDEATH\sCERTIFICATE\b|\bREGISTRATION\sNO\s*\w+\b"
        r"|\bDATE\sAND\sPLACE\sOF\sDEATH\b",
    ),
    (
        "Resume",
        r"\b(RESUME|CURRICULUM\sVITAE)\b|\bPROFESSIONAL\sEXPERIENCE\b"
        r"|\bEDUCATIONAL\sQUALIFICATIONS\b",
    ),
    (
        "Contract",
        r"\b(CONTRACT|AGREEMENT)\sNO\s*\w+\b|\bPARTIES\sTO\sTHE\sAGREEMENT\b"
        r"|\bEXECUTED\sON\b",
    ),
    (
        "Prescription",
        r"\bPRESCRIPTION\b|\bRX\sNO\s*\w+\b|\bMEDICATION\s.*DOSAGE\b"
        r"|\bPHYSICIAN\sNAME\b",
    ),
    (
        "Receipt",
        r"\bRECEIPT\sNO\s*\w+\b|\bPAID\sAMOUNT\s*[\d,.]+\b"
        r"|\bPURCHASE\sDATE\s*\d{2}-\d{2}-\d{4}\b",
    ),
    (
        "Bank Passbook",
        r"\bPASSBOOK\b|\bACCOUNT\sHOLDER\sNAME\b|\bIFSC\sCODE\s*\w{4}\d{7}\b"
        r"|\bBRANCH\sADDRESS\b",
    ),
    (
        "School ID",
        r"\bSCHOOL\sID\sCARD\b|\bSTUDENT\sID\s*\w+\b|\bACADEMIC\sSESSION\b",
    ),
    (
        "Employee ID",
        r"\bEMPLOYEE\sID\s*\w+\b|\bDESIGNATION\s.*\b|\bEMPLOYEE\sCODE\b",
    ),
    (
        "Property Document",
        r"\b(SALE\sDEED|PROPERTY\sDOCUMENT)\b|\bKHASRA\sNO\b"
        r"|\bREGISTRATION\sDATE\s*\d{2}-\d{2}-\d{4}\b",
    ),
    (
        "Court Order",
        r"\bCOURT\sORDER\b|\bCASE\sNO\s*\w+\b|\bJUDGMENT\sDATE\s*\d{2}-\d{2}-\d{4}\b"
        r"|\bHIGH\sCOURT\b",
    ),
]

DOCUMENT_SIGNATURES: list[tuple[str, re.Pattern[str]]] = [
    (name, re.compile(pattern, re.IGNORECASE)) for name, pattern in _SIGNATURES
]

CLASSIFY_PROMPT = (
    "Analyze the following text and identify the most likely document type from "
    "a broad range of possibilities. Examples include {examples}. Provide ONLY the "
    'document type as a JSON object, like {{"document_type": "Passport"}}. Do NOT '
    'include any other text or prose in the response. Text: "{text}"'
)


def match_signature(text: str) -> str | None:
    """Return the first document type whose signature matches ``text``."""
    for name, pattern in DOCUMENT_SIGNATURES:
        if pattern.search(text):
            return name
    return None


class DocumentClassifier:
    """Two-tier document type prediction.

    Args:
        client: Remote text API client used when no signature matches.
    """

    def __init__(self, client: RemoteTextClient) -> None:
        self.client = client

    def classify(self, text: str) -> str:
        """Predict the document type of ``text``.

        Returns:
            A signature name, the remote prediction, or
            ``"Unknown Document"`` when the remote call fails.
        """
        local = match_signature(text)
        if local is not None:
            logger.info("Document type matched locally: %s", local)
            return local

        examples = ", ".join(f'"{name}"' for name, _ in _SIGNATURES)
        prompt = CLASSIFY_PROMPT.format(examples=examples, text=text)
        try:
            reply = self.client.complete(prompt)
        except (httpx.HTTPError, RemoteResponseError) as exc:
            logger.warning("Document type prediction failed: %s", exc)
            return UNKNOWN_DOCUMENT

        document_type = reply.get("document_type")
        if not isinstance(document_type, str):
            logger.warning("Malformed document type reply: %s", reply)
            return UNKNOWN_DOCUMENT
        return document_type
