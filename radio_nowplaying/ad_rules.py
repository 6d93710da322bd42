"""
Advertisement classification rules for Radio Now Playing

Single rules table shared by the keyword scan (Tier 1) and the structured
pattern match (Tier 2). Bump RULES_VERSION whenever a list changes so stored
ad_detections rows can be traced back to the rules that produced them.

All phrases are lower-case and matched on word boundaries against the
lower-cased "title artist description" text.
"""

import re
from dataclasses import dataclass

RULES_VERSION = 3

# ==================== TIER 1: KEYWORD VOCABULARY ====================

# A snapshot needs at least KEYWORD_THRESHOLD distinct hits to count as an ad
KEYWORD_THRESHOLD = 2

AD_KEYWORDS = [
    'call now', 'limited time', 'special offer', 'visit today',
    "don't miss", 'sale', 'discount', 'percent off',
    'financing available', 'free delivery', 'sponsored by',
    'brought to you by', 'commercial', 'advertisement',
    'phone number', 'website', 'location', 'store', 'dealership',
]


# ==================== TIER 2: STRUCTURED CATEGORIES ====================

# Category names, in evaluation order (first match supplies the reason)
CATEGORY_COMMERCIAL = 'commercial'
CATEGORY_BRAND = 'brand'
CATEGORY_FINANCIAL = 'financial'
CATEGORY_CALL_TO_ACTION = 'call_to_action'
CATEGORY_CORPORATE = 'corporate'
CATEGORY_DURATION = 'duration'

TIER2_ORDER = (
    CATEGORY_COMMERCIAL,
    CATEGORY_BRAND,
    CATEGORY_FINANCIAL,
    CATEGORY_CALL_TO_ACTION,
    CATEGORY_CORPORATE,
    CATEGORY_DURATION,
)

# Explicit "this is not music" phrases
COMMERCIAL_INDICATORS = [
    'commercial', 'advertisement', 'ad break', 'sponsor', 'sponsored',
    'promo', 'promotion', 'psa', 'public service', 'in a commercial',
    'commercial break', 'in commercial break',
    "we'll be right back", 'stay tuned',
]

# Station-side ad markers that are not plain phrases
COMMERCIAL_MARKER_PATTERNS = [
    re.compile(r'^\s*\[ad\]'),
]

FINANCIAL_TERMS = [
    'apr', 'annual percentage rate', 'credit score', 'credit card',
    'member fdic', 'equal housing lender', 'no annual fee', 'cash back',
    'interest rate', 'refinance', 'mortgage', 'auto loan', 'personal loan',
]

# Artist field only
CORPORATE_SUFFIX_PATTERN = re.compile(r'\b(corp|corporation|inc|llc|ltd)\b\.?')

DURATION_PATTERN = re.compile(r'\b(10|15|30|60|90)[\s-]*(sec|secs|second|seconds)\b')


@dataclass(frozen=True)
class BrandRule:
    """A known advertiser

    Attributes:
        name: Display name used in "<name> Commercial"
        category: Advertiser category reported in the verdict
        patterns: Phrases that identify the brand (unambiguous only)
        domain: Logo CDN domain
    """
    name: str
    category: str
    patterns: tuple
    domain: str


BRAND_RULES = [
    # Banks and cards
    BrandRule('Capital One', 'financial', ('capital one', 'capitalone'), 'capitalone.com'),
    BrandRule('Chase', 'financial', ('chase bank', 'jpmorgan chase', 'chase sapphire', 'chase freedom'), 'chase.com'),
    BrandRule('Bank of America', 'financial', ('bank of america',), 'bankofamerica.com'),
    BrandRule('Wells Fargo', 'financial', ('wells fargo',), 'wellsfargo.com'),
    BrandRule('Citi', 'financial', ('citibank', 'citi card'), 'citi.com'),
    BrandRule('American Express', 'financial', ('american express', 'amex'), 'americanexpress.com'),
    BrandRule('Discover', 'financial', ('discover card', 'discover it'), 'discover.com'),
    # Insurance
    BrandRule('GEICO', 'insurance', ('geico',), 'geico.com'),
    BrandRule('Progressive', 'insurance', ('progressive insurance', 'flo from progressive'), 'progressive.com'),
    BrandRule('State Farm', 'insurance', ('state farm', 'statefarm'), 'statefarm.com'),
    BrandRule('Allstate', 'insurance', ('allstate',), 'allstate.com'),
    BrandRule('Liberty Mutual', 'insurance', ('liberty mutual',), 'libertymutual.com'),
    # Fast food and drinks
    BrandRule("McDonald's", 'fast_food', ("mcdonald's", 'mcdonalds'), 'mcdonalds.com'),
    BrandRule('Burger King', 'fast_food', ('burger king',), 'bk.com'),
    BrandRule("Wendy's", 'fast_food', ("wendy's",), 'wendys.com'),
    BrandRule('Taco Bell', 'fast_food', ('taco bell',), 'tacobell.com'),
    BrandRule('Chick-fil-A', 'fast_food', ('chick-fil-a', 'chick fil a'), 'chick-fil-a.com'),
    BrandRule('Coca-Cola', 'beverage', ('coca-cola', 'coca cola'), 'coca-cola.com'),
    BrandRule('Pepsi', 'beverage', ('pepsi',), 'pepsi.com'),
    # Auto
    BrandRule('Toyota', 'automotive', ('toyota',), 'toyota.com'),
    BrandRule('Chevrolet', 'automotive', ('chevrolet', 'chevy'), 'chevrolet.com'),
    BrandRule('Ford', 'automotive', ('ford motor', 'ford dealer', 'ford f-150'), 'ford.com'),
    # Telecom
    BrandRule('Verizon', 'telecom', ('verizon',), 'verizon.com'),
    BrandRule('AT&T', 'telecom', ('at&t',), 'att.com'),
    BrandRule('T-Mobile', 'telecom', ('t-mobile', 'tmobile'), 't-mobile.com'),
    # Retail
    BrandRule('Walmart', 'retail', ('walmart',), 'walmart.com'),
    BrandRule('Target', 'retail', ('target stores', 'target.com'), 'target.com'),
    BrandRule('Amazon', 'retail', ('amazon prime', 'amazon.com'), 'amazon.com'),
    BrandRule('The Home Depot', 'retail', ('home depot',), 'homedepot.com'),
    BrandRule('Gain', 'household', ('gain detergent', 'gain laundry', 'gain flings'), 'gain.com'),
    # Tech, streaming, apparel, rideshare
    BrandRule('Samsung', 'tech', ('samsung',), 'samsung.com'),
    BrandRule('Google', 'tech', ('google pixel', 'google play'), 'google.com'),
    BrandRule('Spotify', 'streaming', ('spotify premium',), 'spotify.com'),
    BrandRule('Netflix', 'streaming', ('netflix',), 'netflix.com'),
    BrandRule('Nike', 'apparel', ('nike',), 'nike.com'),
    BrandRule('Adidas', 'apparel', ('adidas',), 'adidas.com'),
    BrandRule('Uber', 'rideshare', ('uber eats', 'uber ride'), 'uber.com'),
    BrandRule('Lyft', 'rideshare', ('lyft',), 'lyft.com'),
]


# ==================== BRANDING ====================

COMPANY_NAME_PATTERNS = [
    re.compile(r'brought to you by (.+)', re.IGNORECASE),
    re.compile(r'sponsored by (.+)', re.IGNORECASE),
    re.compile(r'(.+) commercial', re.IGNORECASE),
    re.compile(r'(.+) advertisement', re.IGNORECASE),
    re.compile(r'(.+) promo', re.IGNORECASE),
]

# Words removed from a company name before looking up its logo domain
LOGO_NOISE_PATTERN = re.compile(r'\b(in a commercial|advertisement|commercial|sponsor|promo|ad)\b')

# Company name (cleaned, lower-case) -> logo domain, for names that are not
# a BrandRule display name
LOGO_DOMAIN_ALIASES = {
    'mcdonalds': 'mcdonalds.com',
    'coke': 'coca-cola.com',
    'att': 'att.com',
    'tmobile': 't-mobile.com',
    'apple': 'apple.com',
    'target': 'target.com',
    'amazon': 'amazon.com',
    'spotify': 'spotify.com',
    'uber': 'uber.com',
    'ford': 'ford.com',
    'progressive': 'progressive.com',
    'chase': 'chase.com',
    'gain': 'gain.com',
    'google': 'google.com',
}


def phrase_pattern(phrase):
    """Compile a lower-case phrase into a word-boundary regex

    Boundaries are "not a letter or digit", so phrases containing
    punctuation (at&t, mcdonald's) still match.
    """
    return re.compile(r'(?<![a-z0-9])' + re.escape(phrase) + r'(?![a-z0-9])')


def compile_phrases(phrases):
    return [(phrase, phrase_pattern(phrase)) for phrase in phrases]


def build_logo_domains():
    """Lower-case company name -> logo domain, brands first then aliases"""
    domains = {}
    for rule in BRAND_RULES:
        domains[rule.name.lower()] = rule.domain
        for pattern in rule.patterns:
            domains.setdefault(pattern, rule.domain)
    for name, domain in LOGO_DOMAIN_ALIASES.items():
        domains.setdefault(name, domain)
    return domains


COMPILED_AD_KEYWORDS = compile_phrases(AD_KEYWORDS)
COMPILED_COMMERCIAL_INDICATORS = compile_phrases(COMMERCIAL_INDICATORS)
COMPILED_FINANCIAL_TERMS = compile_phrases(FINANCIAL_TERMS)
COMPILED_BRAND_RULES = [
    (rule, [phrase_pattern(p) for p in rule.patterns]) for rule in BRAND_RULES
]
LOGO_DOMAINS = build_logo_domains()
