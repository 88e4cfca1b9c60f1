"""Keyword lists and patterns used by pain scoring."""

import re

# 3 points each
HIGH_INTENSITY_KEYWORDS = [
    "nightmare", "hate", "hated", "hating", "frustrated", "frustrating", "frustration",
    "desperate", "desperately", "furious", "infuriating", "fed up", "sick of",
    "tired of", "done with", "can't stand", "cannot stand", "wit's end",
    "terrible", "awful", "horrible", "horrendous", "worst", "impossible",
    "unbearable", "broken", "useless", "worthless", "pointless",
    "exhausted", "exhausting", "overwhelmed", "burning out", "burnt out",
    "burned out", "killing me", "driving me crazy", "driving me insane",
    "giving up", "gave up", "about to quit", "ready to quit", "breaking point",
    "last straw", "waste of time", "waste of money", "complete disaster",
    "absolute mess", "keeps crashing", "constantly crashes", "lost all my",
]

# 2 points each
MEDIUM_INTENSITY_KEYWORDS = [
    "struggle", "struggling", "struggled", "struggles",
    "difficult", "difficulty", "hard", "harder", "challenging",
    "problem", "problems", "issue", "issues", "concern", "concerned",
    "worried", "worry", "worrying", "confusing", "confused", "complicated",
    "annoying", "annoyed", "irritating", "disappointing", "disappointed",
    "lacking", "missing", "inadequate", "stuck", "blocked", "failing", "failed",
    "not working", "doesn't work", "won't work", "isn't working",
    "can't figure out", "no idea how", "don't know how",
    "takes too long", "time consuming", "tedious", "cumbersome", "lonely",
    "isolated", "isolating",
    "crash", "crashes", "crashed", "crashing", "freezes", "frozen", "glitch",
    "glitchy", "buggy", "bug", "bugs", "laggy", "slow",
]

# 1 point each
LOW_INTENSITY_KEYWORDS = [
    "wondering", "curious", "thinking about", "considering", "looking into",
    "exploring", "researching", "maybe", "perhaps", "sometimes", "occasionally",
    "wish there was", "wish i could", "would be nice", "could be better",
    "room for improvement",
]

# 2 points each
SOLUTION_SEEKING_KEYWORDS = [
    "looking for", "searching for", "trying to find", "need to find",
    "anyone know", "does anyone know", "recommendations", "recommend",
    "suggestions", "suggest", "advice", "need help", "please help",
    "can someone help", "how do i", "how can i", "what do you use",
    "what should i use", "best way to", "better way to", "easier way to",
    "alternatives", "alternative to", "instead of", "any tips", "any ideas",
    "any suggestions",
]

# 4 points each
WTP_STRONG = [
    "would pay", "willing to pay", "happy to pay", "i'd pay", "i would pay",
    "i'll pay", "take my money", "worth paying", "worth every penny",
    "whatever it costs",
]
WTP_MEDIUM = [
    "wish my company", "convince my boss", "convince management",
    "our team needs", "enterprise plan", "business plan",
    "budget for", "price point", "how much does", "how much would",
    "subscription", "monthly fee", "premium", "pro version", "paid version",
    "where can i buy", "considering paying", "thinking of paying",
]
WTP_LOW = [
    "worth the money", "worth it", "value for money", "save time",
    "save money", "save hours", "pay for convenience",
]


def _compile(patterns: list[str]) -> list[re.Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


# Pain that isn't the author's own, current pain
NEGATIVE_CONTEXT_PATTERNS = _compile([
    r"hate\s+(?:the\s+)?(?:competition|competitors?|rivals?)",
    r"(?:some|many|most)\s+people\s+(?:are\s+)?(?:frustrated|struggling)",
    r"(?:is\s+it|are\s+you)\s+(?:frustrated|struggling|having\s+trouble)",
    r"(?:would|could|might)\s+be\s+(?:frustrated|terrible|awful)",
    r"if\s+(?:you|they|one)\s+(?:were|are)\s+(?:frustrated|struggling)",
    r"used\s+to\s+(?:be\s+)?(?:frustrated|struggle|hate)",
    r"was\s+(?:frustrated|struggling)\s+(?:but|until)",
])

# Money language that isn't purchase intent
WTP_EXCLUSION_PATTERNS = _compile([
    r"budget\s+(?:cut|meeting|review|planning|approval)",
    r"(?:company|department|team)\s+budget",
    r"(?:can't|cannot)\s+afford",
    r"(?:price|cost)\s+(?:is\s+)?(?:too\s+)?(?:high|steep)",
    r"(?:too\s+many|another)\s+subscription",
    r"(?:cancel|cancelled|canceling)\s+(?:my\s+)?subscription",
    r"(?:not|isn't|wasn't)\s+worth\s+(?:it|the\s+money|paying)",
    r"(?:get|want|need)\s+(?:my\s+)?(?:money\s+back|refund)",
    r"(?:ask|asking)\s+for\s+(?:a\s+)?refund",
    r"regret\s+(?:buying|purchasing|paying|upgrading|subscribing)",
    r"(?:biggest|worst)\s+(?:waste|mistake)\s+of\s+(?:money|my\s+money)",
    r"money\s+(?:down\s+the\s+drain|wasted)",
])

# Anchor texts for the semantic praise check
PRAISE_ANCHOR = (
    "I love this app, it is amazing and works perfectly. Highly recommend it, "
    "five stars, best app I have ever used, no complaints at all."
)
COMPLAINT_ANCHOR = (
    "This app is frustrating and broken. It keeps crashing, I lost my data, "
    "support never answers and I want a refund. Terrible experience."
)
