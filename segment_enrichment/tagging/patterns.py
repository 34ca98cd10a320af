"""
Review Pattern Tables

Deterministic lexicons used to tag review text. Each table is an ordered,
read-only mapping from label to a compiled case-insensitive regex.
Declaration order is significant: it breaks ranking ties downstream.

Two segmentation layers:
- Identity (WHO the reviewer is): healthcare worker, diabetic, senior, ...
- Motivation (WHY they buy): comfort, pain relief, style, ...

Three secondary tables describe what a review talks about:
pains, benefits and transformation language.
"""

import re
from types import MappingProxyType
from typing import Dict, Mapping, Pattern


class SegmentLayer:
    """Segmentation layers"""
    IDENTITY = "identity"
    MOTIVATION = "motivation"


def _compile(table: Dict[str, str]) -> Mapping[str, Pattern]:
    return MappingProxyType({name: re.compile(expr, re.IGNORECASE) for name, expr in table.items()})


# =============================================================================
# LAYER 1: IDENTITY
# =============================================================================

IDENTITY_SEGMENT_PATTERNS = _compile({
    "healthcare_worker": r"\b(nurse|nursing|hospital|12[- ]?hour shift|healthcare|CNA|medical (staff|professional)|in the (ER|OR|ICU)|on rounds|scrubs)\b",
    "caregiver_gift_buyer": r"\b(bought (for|these for)|got (these|them) for|my (mom|mother|dad|father|husband|wife|parent|grandm|grandp|grandfather|grandmother)|gift|stocking stuffer|(christmas|birthday|mother'?s?|father'?s?) (day )?gift|for (him|her)|surprise(d)? (them|him|her)|perfect gift)\b",
    "diabetic_neuropathy": r"\b(diabeti[cs]?|diabetes|blood sugar|type [12]|A1C|neuropathy|nerve (damage|pain)|sugar level|insulin)\b",
    "standing_worker": r"\b(stand(ing)? all day|on (my|your|their) feet|retail|teacher|teaching|warehouse|factory|behind the counter|concrete floor|delivery|hairstylist|stylist|bartend|waitress|waiter|server|cashier)\b",
    "accessibility_mobility": r"\b(paralys|paralyzed|arthritis|rheumatoid|hip (issue|problem|replacement)|knee replacement|wheelchair|limited mobility|range of motion|bad (back|knee|hip)|can't (bend|reach)|sock aid|fibromyalgia|fibro|lupus|gout|sciatica|stenosis)\b",
    "traveler": r"\b(travel|flight|airplane|aeroplane|vacation|trip|long (flight|drive)|road trip|hotel|airport|flying|flew|cruise)\b",
    "senior": r"\b(([5-9]\d|1\d{2})[- ]?(year|yr)[- ]?old|elderly|senior|aging|getting older|at my age|older (adult|person|gentleman|lady|woman|man))\b",
    "pregnant_postpartum": r"\b(pregnan|expecting|maternity|postpartum|post-?partum|baby bump|trimester|prenatal|swelling during pregnan)\b",
    "medical_therapeutic": r"\b(doctor (recommended|told|said|prescribed)|physician|podiatrist|prescribed|varicose|spider vein|vericose|DVT|blood clot|deep vein|post[- ]?surg|after (my )?surgery|post[- ]?op|chemo|chemotherapy|wound care|ulcer|dialysis|lymphedema|edema|heart (condition|failure)|mmHg|compression level|medical[- ]?grade|physical therapy|\bPT\b|rehab)\b",
})


# =============================================================================
# LAYER 2: MOTIVATION
# =============================================================================

MOTIVATION_SEGMENT_PATTERNS = _compile({
    "comfort_seeker": r"\b(comfort|comfortable|soft|cozy|cushion|plush|comfy|gentle|breathab|like a cloud|second skin|heavenly|baby soft|silky|pamper|like butter|feels? (great|amazing|wonderful|incredible|fantastic)|forget I'm wearing|don't (even )?feel|like wearing nothing|most comfortable|so soft|not itchy|no itch|snug but not tight|don't pinch|no pressure)\b",
    "pain_symptom_relief": r"\b(swell|swollen|pain|ache|achy|hurt|sore|cramp|throb|numb|tingling|burning|heavy legs|tired (feet|legs)|circulation|blood flow|stiff|inflammation|flare|acts? up|bother|pins and needles|heel pain|arch pain|plantar|planter|calf pain|restless leg|shooting pain|feet (were|are) killing|reduce.{0,10}(swelling|pain|pressure))\b",
    "style_conscious": r"\b(cute|pretty|beautiful|stylish|fashion|love the (color|pattern|design)|fun (design|pattern)|trendy|look(s)? (good|great|nice)|compliment|got compliment|people ask|not ugly|don't look (like )?medical|doesn't look (like )?compress|eye.?catching|vibrant|bold (color|pattern)|sleek|modern|attractive|professional look|doesn't scream|no one can tell|love the design|variety of (color|pattern|style)|not embarrass|actually look nice|wore them to (work|the office))\b",
    "quality_value": r"\b(worth (every|the) (penny|price|money)|well made|well-made|held up|holding up|after (several|many|dozens of) wash|still like new|durable|durability|don't wear out|no holes|high quality|good quality|better than|tried other|compared to|you get what you pay|investment|last (a long time|forever)|didn't pill|no pilling|didn't shrink|color didn't fade|elastic held|didn't lose.{0,10}shape|well constructed|premium|bang for|money well spent|not flimsy|built to last)\b",
    "daily_wear_convert": r"\b(every ?day|daily|all I wear|only socks? I (wear|buy|use)|replaced all|threw out|go-?to|wardrobe staple|wear.{0,10}everything|all[- ]?day comfort|morning to night|Monday through Friday|work week|reliable|never disappoints|can count on|grab a pair|in my rotation|enough pairs|no fuss|hassle ?free|just works|perfect for daily|around the house|for work|to the office|all day|whole drawer)\b",
    "skeptic_converted": r"\b(skeptic|sceptic|didn't (think|believe|expect)|wasn't sure|hesitant|took a chance|figured I'?d try|pleasantly surprised|pleasant surprise|proved me wrong|I was wrong|actually work|to my surprise|have to admit|I'll admit|exceeded (my )?expectation|better than expected|blew me away|I stand corrected|I'm a (convert|believer)|thought it was (hype|gimmick)|gave it a shot|last resort|tried everything|nothing else worked|glad I tried|should have tried sooner)\b",
    "emotional_transformer": r"\b(life.?chang|changed my life|game.?changer|miracle|godsend|god.?send|blessing|saved (my|me)|gave me.{0,10}(life|back)|can (walk|sleep|move) again|no more pain|pain.?free|night and day|used to (dread|hate|struggle)|dreaded|now I can|now I'm able|for the first time in|I cried|made me cry|tears?|so grateful|grateful|thank (you|god)|amazing difference|transformed|never going back|can't live without|essential|necessity|best thing|such relief|instant relief|freedom|gave me my|finally (found|a sock|something))\b",
    "repeat_loyalist": r"\b(order(ed|ing)? (again|more)|back for more|second pair|third pair|fourth pair|fifth pair|buying more|stocking up|this time I (got|ordered)|already (have|own)|been buying.{0,10}(for years|for months)|loyal customer|keep coming back|won't buy anything else|switched to these|never going back to|my (second|third|fourth|fifth|\d+(st|nd|rd|th)) order|still (love|great)|just as good as|consistent quality|haven't changed|every few months|replacing my|wore.{0,10}(last|old) (ones?|pair)|time to restock|whole drawer|recommended to|told (my |every)|entire family|customer for life|brand loyal)\b",
})


# =============================================================================
# SECONDARY TABLES
# =============================================================================

PAIN_PATTERNS = _compile({
    "sock_marks": r"\b(mark|indent|ring|line|groove|imprint|red ring|left.{0,10}mark|dig(ging)? in)\b",
    "swelling": r"\b(swell|swollen|edema|puff|bloat|retention|fluid|lymphedema|water retention)\b",
    "tightness": r"\b(tight|squeeze|constrict|tourniquet|cutting off|strangle|binding|dig into)\b",
    "hard_to_put_on": r"\b(hard to (put|get) on|struggle|can't get on|need help|difficult|fight me|battle)\b",
    "falling_down": r"\b(fall down|slide|slip|bunch|roll down|won't stay)\b",
    "circulation": r"\b(circulation|numb|purple|blood flow|tingling|pins and needles)\b",
    "pain": r"\b(pain|ache|achy|hurt|sore|cramp|throb|burning|burning sensation|tender)\b",
    "neuropathy": r"\b(neuropathy|nerve|nerve damage|nerve pain)\b",
    "heavy_tired_legs": r"\b(heavy legs|legs? feel heavy|tired (feet|legs)|fatigued? (feet|legs))\b",
    "restless_legs": r"\b(restless leg|can't sleep.{0,15}leg|leg.{0,10}at night)\b",
})

BENEFIT_PATTERNS = _compile({
    "comfort": r"\b(comfort|comfortable|soft|cozy|cushion|plush|comfy|gentle|like a cloud|second skin|heavenly)\b",
    "no_marks": r"\b(no mark|no indent|no ring|mark-free|without mark|no red|don't leave mark|doesn't leave)\b",
    "easy_application": r"\b(easy to (put|get|slip|pull) on|slip(s)? (right )?on|no struggle|effortless|slides? on|wide opening)\b",
    "stays_up": r"\b(stay(s)? up|don't fall|don't slide|stay(s)? in place|don't bunch|don't roll)\b",
    "style": r"\b(pattern|color|colorful|design|cute|pretty|beautiful|stylish|fashion|look(s)? (good|great|nice)|trendy|vibrant|compliment|attractive)\b",
    "warmth": r"\b(warm|thermal|heat|keeps? (my )?feet warm)\b",
    "fit": r"\b(fit(s)?|perfect fit|true to size|fits? great|fits? (my|perfectly)|snug)\b",
    "quality": r"\b(quality|durable|durability|well made|last(s)?|hold(s)? up|well constructed|premium|substantial)\b",
    "breathable": r"\b(breathab|moisture|wicking|keeps? (my )?feet dry|not sweaty|ventilat)\b",
    "not_medical_looking": r"\b(don't look (like )?medical|doesn't look (like )?compress|not ugly|doesn't scream|no one can tell|wouldn't know)\b",
})

TRANSFORMATION_PATTERNS = _compile({
    "game_changer": r"game.?changer",
    "finally": r"\bfinally\b",
    "no_more": r"no more",
    "love": r"\blove\b",
    "best_ever": r"best (socks?|I've|I have|pair) ever",
    "life_changing": r"life.?chang|changed my life",
    "wish_found_sooner": r"wish.*(found|knew|tried|bought|discovered).*(sooner|earlier|before|years ago)",
    "miracle": r"\b(miracle|godsend|god.?send|blessing|saved my|saved me)\b",
    "never_going_back": r"\b(never going back|won't go back|never buy another|only (socks?|brand|ones?))\b",
    "cant_live_without": r"\b(can't live without|can't do without|essential|necessity|must.?have)\b",
    "percent_improvement": r"\d+%\s*(less|more|better|reduction|improvement)",
})


# Label -> layer, derived from the two segmentation tables
SEGMENT_LAYER: Mapping[str, str] = MappingProxyType({
    **{label: SegmentLayer.IDENTITY for label in IDENTITY_SEGMENT_PATTERNS},
    **{label: SegmentLayer.MOTIVATION for label in MOTIVATION_SEGMENT_PATTERNS},
})

# Identity labels first, then motivation labels
SEGMENT_ORDER = tuple(SEGMENT_LAYER)


def display_name(label: str) -> str:
    """Human-readable form of a label"""
    return label.replace("_", " ")
