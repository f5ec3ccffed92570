# upsc_prep/core/dummy_data.py
from typing import List, Dict, Any

MULTI_STATEMENT_OPTIONS = ["1 only", "1 and 2", "2 and 3", "1, 2 and 3"]

# Dummy questions used when the AI service runs in dummy mode
DUMMY_QUESTIONS: List[Dict[str, Any]] = [
    {
        "question": "Consider the following statements about the Finance Commission:",
        "statements": [
            "It is constituted by the President under Article 280.",
            "It is constituted every fifth year or earlier if the President considers it necessary.",
            "Its recommendations are binding on the Union Government.",
        ],
        "options": MULTI_STATEMENT_OPTIONS,
        "answer": "1 and 2",
        "explanation": "Article 280 provides for a Finance Commission every five years; "
                       "its recommendations are advisory, not binding.",
        "topic": "Polity",
    },
    {
        "question": "Consider the following statements regarding the Preamble:",
        "statements": [
            "The words 'Socialist' and 'Secular' were added by the 42nd Amendment.",
            "The Preamble is enforceable in a court of law.",
        ],
        "options": MULTI_STATEMENT_OPTIONS,
        "answer": "1 only",
        "explanation": "The 42nd Amendment (1976) added the words; the Preamble is non-justiciable.",
        "topic": "Polity",
    },
    {
        "question": "Consider the following statements about the Western Ghats:",
        "statements": [
            "They are a UNESCO World Heritage Site.",
            "They are older than the Himalayas.",
            "Anamudi is their highest peak.",
        ],
        "options": MULTI_STATEMENT_OPTIONS,
        "answer": "1, 2 and 3",
        "explanation": "All three statements are correct; Anamudi (2,695 m) lies in Kerala.",
        "topic": "Geography",
    },
    {
        "question": "Consider the following statements about the Permanent Settlement of 1793:",
        "statements": [
            "It was introduced by Lord Cornwallis.",
            "Zamindars were recognised as owners of the land.",
        ],
        "options": MULTI_STATEMENT_OPTIONS,
        "answer": "1 and 2",
        "explanation": "Cornwallis introduced it in Bengal, making zamindars proprietors of land.",
        "topic": "History",
    },
    {
        "question": "Consider the following statements about the Repo Rate:",
        "statements": [
            "It is the rate at which the RBI lends to commercial banks.",
            "An increase in the repo rate tends to reduce inflation.",
            "It is decided by the Monetary Policy Committee.",
        ],
        "options": MULTI_STATEMENT_OPTIONS,
        "answer": "1, 2 and 3",
        "explanation": "The MPC fixes the repo rate; raising it tightens liquidity and curbs inflation.",
        "topic": "Economy",
    },
    {
        "question": "Consider the following statements about Ramsar sites in India:",
        "statements": [
            "Chilika Lake was among the first Ramsar sites designated in India.",
            "Ramsar sites are notified under the Wildlife Protection Act, 1972.",
        ],
        "options": MULTI_STATEMENT_OPTIONS,
        "answer": "1 only",
        "explanation": "Chilika and Keoladeo were designated in 1981; Ramsar designation flows from "
                       "an international convention, not the 1972 Act.",
        "topic": "Environment",
    },
]

DUMMY_FLASHCARDS: List[Dict[str, str]] = [
    {"question": "Which Article provides for the Finance Commission?", "answer": "Article 280"},
    {"question": "Who appoints the Chief Election Commissioner?", "answer": "The President of India"},
    {"question": "Which Schedule lists the languages of India?", "answer": "The Eighth Schedule"},
    {"question": "What is the minimum age to become a Rajya Sabha member?", "answer": "30 years"},
    {"question": "Which amendment lowered the voting age to 18?", "answer": "The 61st Amendment (1988)"},
]

DUMMY_TOPICS: Dict[str, List[str]] = {
    "default": [
        "Historical Background",
        "Constitutional Provisions",
        "Institutions and Bodies",
        "Recent Developments",
        "Important Committees and Reports",
    ],
    "polity": [
        "Preamble",
        "Fundamental Rights",
        "Directive Principles of State Policy",
        "Parliament",
        "Judiciary",
        "Federalism",
        "Constitutional Bodies",
    ],
}

# Fallback items served when scraping fails
FALLBACK_CURRENT_AFFAIRS: List[Dict[str, Any]] = [
    {
        "title": "Linguistic Reorganisation of States in India",
        "date": "2025-08-02",
        "category": "Polity and Governance",
        "type": "daily",
        "syllabus": "GS2/ Polity and Governance",
        "context": "The Tamil Nadu Governor recently criticised the linguistic division of states in India.",
        "summary": "The States Reorganisation Act, 1956 established a unified system of 14 states and 6 union territories.",
        "source": "NEXT IAS",
    },
    {
        "title": "Human Outer Planet Exploration (HOPE)",
        "date": "2025-08-02",
        "category": "Science and Technology",
        "type": "daily",
        "syllabus": "GS3/ Science and Technology",
        "context": "Bengaluru-based space tech company Protoplanet, along with ISRO, has developed the analogue station.",
        "summary": "HOPE is an analogue site mimicking geological and environmental conditions found on the Moon and Mars.",
        "source": "Vajiram & Ravi",
    },
]

FALLBACK_ARTICLE_TEXT = (
    "This article could not be loaded. Please try again later or visit the original source."
)
