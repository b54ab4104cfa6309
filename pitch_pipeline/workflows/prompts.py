"""
Prompt Composer

Builds each stage's task text from the RunContext alone: the seed, prior stage
outputs, derived constraints and the run's standing directives. Builders never
fail; a prior output that is missing renders as an empty section.
"""

import re
from typing import Optional

from pitch_pipeline.config import RunOptions


# --- Creative lock catalogue ---

CREATIVE_LOCKS = {
    "scientific-procedural": 'Scientific Procedural: the "CSI" of ecology, told through eDNA, satellite tags and AI forensics',
    "nature-noir": 'Nature Noir: investigative "true crime" for the planet, uncovering environmental crimes on camera',
    "speculative-nh": 'Speculative Natural History: science-grounded "future-casts" of ecosystems under climate stress',
    "urban-rewilding": "Urban Rewilding: wildlife adapting to industrial and urban ruins",
    "biocultural-history": "Biocultural History: prestige essays on the deep-time bond between landscapes and civilizations",
    "blue-chip-2": 'Blue Chip 2.0: ultra-scarce "verified real" captures of rare behavior with zero human footprint',
    "indigenous-wisdom": "Indigenous Wisdom: narratives co-created with traditional ecological knowledge holders",
    "ecological-biography": 'Ecological Biography: "deep time" tracking of a single organism over years via autonomous units',
    "extreme-micro": 'Extreme Micro: "alien" imagery at the cellular scale using borescope optics and electron microscopy',
    "astro-ecology": 'Astro-Ecology: "the orbital view" of global system cycles from planetary and satellite data',
    "process-doc": 'The "Process" Doc: the difficulty and ethics of the shoot itself as proof-of-work',
    "symbiotic-pov": "Symbiotic POV: extreme immersion through on-animal cameras and bio-logging data",
}

DISCOVERY_FALLBACK = (
    "(Discovery Scout: no recent discoveries were found for this seed idea. Proceed with existing "
    "knowledge and the Market Analyst's own research; this is not a gap in the brief.)"
)


def creative_lock_label(options: RunOptions) -> Optional[str]:
    """Resolve the creative-lock selector; unknown selectors are used verbatim."""
    selector = options.creative_lock
    if not selector:
        return None
    return CREATIVE_LOCKS.get(selector, selector)


# --- Standing directive blocks ---

def seed_override_note() -> str:
    return (
        "\n\nSEED OVERRIDE RULE: the seed text is the highest-priority brief. If it names a genre, "
        "platform, delivery year, audience, species, location or premise, that overrides the run "
        "settings below, which are only defaults.\n"
    )


def audience_note(options: RunOptions) -> str:
    if not options.audience:
        return ""
    return (
        f"\n\nTARGET PLATFORM: this pitch is for **{options.audience}**. Tailor tone, format, budget "
        f"tier and episode structure to {options.audience}'s commissioning style.\n"
    )


def delivery_year_note(options: RunOptions) -> str:
    if not options.delivery_year:
        return ""
    return (
        f"\nTARGET DELIVERY YEAR: {options.delivery_year}. This is when the show airs, not when it is "
        "filmed. Calibrate trends, competition and technology to what will be current at launch.\n"
    )


def directive_note(options: RunOptions) -> str:
    if not options.directive:
        return ""
    return (
        f"\n\nCREATIVE DIRECTIVE (MANDATORY): {options.directive}\n"
        "This comes from the executive producer. Every contributor must incorporate it.\n"
    )


def creative_lens_note(options: RunOptions) -> str:
    label = creative_lock_label(options)
    if not label:
        return ""
    return (
        f"\nGENRE LENS: frame the narrative through **{label}**. The primary narrative form must "
        "use this lens; an alternative form may still be offered.\n"
    )


def creative_lock_block(options: RunOptions) -> str:
    label = creative_lock_label(options)
    if not label:
        return ""
    return (
        f"\n\nGENRE LOCK: this pitch is locked to **{label}** unless the seed text names another genre. "
        "Structure, tone, camera language, pacing, sound and scoring must all serve it. Do not drift "
        "into a generic survival thriller.\n"
    )


def options_suffix(ctx) -> str:
    options = ctx.options
    return (
        seed_override_note()
        + audience_note(options)
        + delivery_year_note(options)
        + directive_note(options)
        + creative_lens_note(options)
    )


def knowledge_block(ctx) -> str:
    return f"\n\n{ctx.knowledge}\n\n" if ctx.knowledge else ""


def discovery_block(ctx) -> str:
    brief = ctx.get("discovery")
    if not brief:
        return ""
    return f"\n\n--- DISCOVERY BRIEF (Recent Findings) ---\n{brief}\n--- END DISCOVERY BRIEF ---\n\n"


def narrative_mandate(ctx) -> str:
    form = ctx.constraints.get("narrative_form")
    if not form:
        return ""
    return (
        f'\n\nNARRATIVE MANDATE (BINDING): the recommended narrative form is "{form}". Structure, '
        "tone, camera language, pacing and scoring must serve this form.\n"
    )


def species_guard(ctx) -> str:
    species = ctx.constraints.get("hero_species")
    if not species:
        return ""
    return (
        f'\n\nZERO SPECIES DRIFT: the hero species is "{species}" as named by the Chief Scientist. '
        "Reinterpret the angle if you must, but the animal stays.\n"
    )


def _seed(ctx) -> str:
    return f'"{ctx.seed_input}"'


def _lock(ctx) -> str:
    return creative_lock_block(ctx.options)


# --- Stage builders ---

def build_discovery_prompt(ctx) -> str:
    label = creative_lock_label(ctx.options)
    focus = f" Prioritize findings relevant to the **{label}** lens." if label else ""
    return (
        f"Search for recent discoveries, novel behaviors and new species related to: {_seed(ctx)}"
        f"{options_suffix(ctx)}{_lock(ctx)}\n\n"
        f"Focus on findings from the last 12 months that could make a wildlife documentary "
        f"genuinely unprecedented.{focus} Return a structured Discovery Brief."
    )


def build_market_mandate_prompt(ctx) -> str:
    return (
        f"The seed idea is: {_seed(ctx)}{knowledge_block(ctx)}{discovery_block(ctx)}{options_suffix(ctx)}"
        "Analyze this against current market trends. Include buyer slate gaps by platform, three "
        "trend examples with series names and years, differentiation against the three closest "
        "existing titles, a budget tier recommendation, and your narrative strategy. "
        "Output your full Market Mandate."
    )


def build_fact_sheet_prompt(ctx) -> str:
    return (
        f"The seed idea is: {_seed(ctx)}{knowledge_block(ctx)}{discovery_block(ctx)}{options_suffix(ctx)}"
        f"{_lock(ctx)}{narrative_mandate(ctx)}"
        f"Here is the Market Mandate from the Market Analyst:\n\n{ctx.get('market_mandate')}\n\n"
        "Propose novel animal behaviors with peer-reviewed citations. Name the Primary Species with "
        "its scientific name and mechanism, a B-Story backup species, exact locations and seasons, "
        "and the visual payoff."
    )


def build_logistics_prompt(ctx) -> str:
    return (
        f"The seed idea is: {_seed(ctx)}{knowledge_block(ctx)}{_lock(ctx)}{narrative_mandate(ctx)}\n\n"
        f"Here is the Animal Fact Sheet from the Chief Scientist:\n\n{ctx.get('fact_sheet')}\n\n"
        "Assess feasibility with producer-grade specificity: camera models, crew, shoot duration "
        "with seasonal windows, an itemized budget in dollar ranges, permits, contingencies and "
        "your Unicorn Test probability."
    )


def build_draft_v1_prompt(ctx) -> str:
    return (
        f"The seed idea is: {_seed(ctx)}{knowledge_block(ctx)}{discovery_block(ctx)}{options_suffix(ctx)}"
        f"{species_guard(ctx)}{_lock(ctx)}{narrative_mandate(ctx)}\n\n"
        "Here are the team's inputs:\n\n"
        f"### Market Mandate\n{ctx.get('market_mandate')}\n\n"
        f"### Animal Fact Sheet\n{ctx.get('fact_sheet')}\n\n"
        f"### Logistics & Feasibility\n{ctx.get('logistics')}\n\n"
        "Synthesize all of this into a complete pitch narrative with an A/V script excerpt."
    )


def build_rejection_memo_prompt(ctx) -> str:
    return (
        f"Review the following Draft V1 pitch package:{knowledge_block(ctx)}{_lock(ctx)}{narrative_mandate(ctx)}\n\n"
        f"### Seed Idea\n{_seed(ctx)}\n\n"
        f"### Market Mandate\n{ctx.get('market_mandate')}\n\n"
        f"### Animal Fact Sheet\n{ctx.get('fact_sheet')}\n\n"
        f"### Logistics & Feasibility\n{ctx.get('logistics')}\n\n"
        f"### Draft Script (V1)\n{ctx.get('draft_v1')}\n\n"
        "This is the first review. Attack across every vector and score it."
    )


def build_revision_directives_prompt(ctx) -> str:
    return (
        f"The Commissioning Editor has rejected Draft V1 with this memo:\n\n{ctx.get('rejection_memo')}\n\n"
        "Original team outputs:\n"
        f"- Market Mandate: {ctx.get('market_mandate')}\n"
        f"- Animal Fact Sheet: {ctx.get('fact_sheet')}\n"
        f"- Logistics: {ctx.get('logistics')}\n"
        f"- Draft V1 Script: {ctx.get('draft_v1')}"
        f"{_lock(ctx)}{narrative_mandate(ctx)}\n\n"
        "Parse the rejection. Say exactly what must change and which team member owns each fix."
    )


def build_revised_science_prompt(ctx) -> str:
    return (
        "The Showrunner has issued these revision directives after a Commissioning Editor rejection:\n\n"
        f"{ctx.get('revision_directives')}{_lock(ctx)}\n\n"
        f"Your original Animal Fact Sheet was:\n{ctx.get('fact_sheet')}\n\n"
        "Revise it to address the critique. Keep a reliable B-Story species and make sure the visual "
        "payoff supports cinematic proximity shooting."
    )


def build_revised_logistics_prompt(ctx) -> str:
    return (
        "The Showrunner has issued these revision directives after a Commissioning Editor rejection:\n\n"
        f"{ctx.get('revision_directives')}{_lock(ctx)}{narrative_mandate(ctx)}\n\n"
        f"Your original Logistics Breakdown was:\n{ctx.get('logistics')}\n\n"
        f"The revised science is:\n{ctx.get('revised_science')}\n\n"
        "Revise your breakdown. Camera, sound and crew upgrades must fit the story being told."
    )


def build_draft_v2_prompt(ctx) -> str:
    return (
        "The Showrunner has issued revision directives after a Commissioning Editor rejection:\n\n"
        f"{ctx.get('revision_directives')}{species_guard(ctx)}{_lock(ctx)}{narrative_mandate(ctx)}\n\n"
        "Revised inputs:\n"
        f"- Market Mandate: {ctx.get('market_mandate')}\n"
        f"- Revised Animal Fact Sheet: {ctx.get('revised_science')}\n"
        f"- Revised Logistics: {ctx.get('revised_logistics')}\n\n"
        f"Your original Draft V1 was:\n{ctx.get('draft_v1')}\n\n"
        "Rewrite the script as Draft V2, addressing every directive."
    )


def build_greenlight_review_prompt(ctx) -> str:
    return (
        f"You previously rejected Draft V1 with this memo:\n\n{ctx.get('rejection_memo')}"
        f"{_lock(ctx)}{narrative_mandate(ctx)}\n\n"
        "The team has revised their work. Here is Draft V2:\n\n"
        f"### Revised Animal Fact Sheet\n{ctx.get('revised_science')}\n\n"
        f"### Revised Logistics\n{ctx.get('revised_logistics')}\n\n"
        f"### Draft Script (V2)\n{ctx.get('draft_v2')}\n\n"
        "Review the revisions: have the fatal flaws been addressed, and did anything new break? "
        "Issue a fresh Greenlight Score."
    )


def build_final_pitch_deck_prompt(ctx) -> str:
    return (
        f"The Commissioning Editor has given the greenlight. Compile the final compact pitch card."
        f"{knowledge_block(ctx)}{_lock(ctx)}\n\n"
        f"### Market Mandate (Key Directives)\n{compact_mandate(ctx.get('market_mandate'))}\n\n"
        f"### Final A/V Scriptment\n{ctx.get('draft_v2')}\n\n"
        f"### Editor's Final Review\n{ctx.get('greenlight_review')}\n\n"
        "Output only the Title (as a ## heading), Logline, Summary and Best For sections. "
        "No preamble, no action items, no routing notes."
    )


def build_gatekeeper_prompt(ctx) -> str:
    label = creative_lock_label(ctx.options)
    genre_check = f" Also verify the pitch consistently serves the locked genre ({label})." if label else ""
    return (
        "You are reviewing a completed pitch card. This is the final gate before commissioners."
        f"{knowledge_block(ctx)}{options_suffix(ctx)}{_lock(ctx)}\n\n"
        f"Run your full audit.{genre_check}\n\n"
        f"### The Pitch Card to Review\n{ctx.get('final_pitch_deck')}\n\n"
        f"### Original Seed Idea\n{_seed(ctx)}\n\n"
        "Deliver your verdict in the specified format. Cite exact series and episodes if this is derivative."
    )


# --- Loop directives ---

def build_pivot_prompt(ctx, stage_key: str, category: str, rejected_text: str,
                       pivot_number: int, max_pivots: int) -> str:
    """Ask the rejecting role for the closest valid alternative that preserves intent."""
    header = f"## PIVOT REQUIRED (attempt {pivot_number} of {max_pivots}){_lock(ctx)}\n\n"
    if category == "policy":
        return (
            header
            + f"Your assessment flagged ethical concerns:\n\n### Your Rejection\n{rejected_text}\n\n"
            f"### The Seed Idea\n{_seed(ctx)}\n\n"
            f"### The Scientist's Fact Sheet\n{ctx.get('fact_sheet')}\n\n"
            "Re-evaluate proportionately. Filming naturally occurring behavior is not a violation, and "
            "a method another contributor suggested can simply be left out of your plan. Propose the "
            "closest valid alternative that preserves the intent, using observational techniques only "
            "(hides, remote cameras, long lenses, autonomous drones), and deliver a full logistics "
            "breakdown. Re-issue the ETHICAL REJECTION only if no observational alternative exists."
        )
    return (
        header
        + f"Your assessment rejected this idea:\n\n### Your Rejection\n{rejected_text}\n\n"
        f"### Original Seed Idea\n{_seed(ctx)}\n\n"
        f"### Market Context\n{ctx.get('market_mandate')}\n\n"
        "The pipeline iterates ideas rather than killing them. Identify what is valid in the seed, "
        "then propose the closest valid alternative that preserves the intent: same theme, and the "
        "same place or animal where possible. Deliver a complete output with every required section."
    )


def build_director_prompt(ctx, attempt: int, max_revisions: int, draft: str,
                          critique: str, score: Optional[int]) -> str:
    label = creative_lock_label(ctx.options)
    genre = f" Every directive must enforce the locked genre ({label})." if label else ""
    return (
        f"The Commissioning Editor scored the last draft at {_score(score)}/100. "
        f"This is revision attempt {attempt} of {max_revisions}.{_lock(ctx)}\n\n"
        f"### Editor's Review\n{critique}\n\n"
        f"### The Draft That Failed\n{draft}\n\n"
        f"### Original Seed Idea\n{_seed(ctx)}\n\n"
        "Issue surgical revision directives that target only the failings the Editor identified."
        f"{genre}"
    )


def build_script_revision_prompt(ctx, attempt: int, max_revisions: int, draft: str,
                                 critique: str, score: Optional[int], directives: str = "") -> str:
    guidance = directives or critique
    return (
        f"The last draft scored {_score(score)}/100, below threshold. Revision attempt {attempt} of "
        f"{max_revisions}. Address this guidance:\n\n{guidance}"
        f"{species_guard(ctx)}{_lock(ctx)}{narrative_mandate(ctx)}\n\n"
        f"Your previous draft:\n{draft}\n\n"
        "Revised inputs:\n"
        f"- Market Mandate: {ctx.get('market_mandate')}\n"
        f"- Animal Fact Sheet: {ctx.get('revised_science') or ctx.get('fact_sheet')}\n"
        f"- Logistics: {ctx.get('revised_logistics') or ctx.get('logistics')}\n\n"
        "Write the next draft in full."
    )


def build_script_review_prompt(ctx, attempt: int, max_revisions: int, draft: str,
                               previous_critique: str, previous_score: Optional[int]) -> str:
    label = creative_lock_label(ctx.options)
    genre = f" Check for genre drift away from {label}." if label else ""
    return (
        f"This is revision attempt {attempt} of {max_revisions}.{_lock(ctx)}\n\n"
        f"Previous review ({_score(previous_score)}/100):\n{previous_critique}\n\n"
        f"### Revised Draft Script\n{draft}\n\n"
        f"Have the specific failings been addressed?{genre} Issue a fresh Greenlight Score."
    )


def build_pitch_card_revision_prompt(ctx, attempt: int, max_revisions: int, draft: str,
                                     critique: str, score: Optional[int], directives: str = "") -> str:
    return (
        f"The Gatekeeper rejected this pitch ({_score(score)}/100). Revision attempt {attempt} of "
        f"{max_revisions}.{_lock(ctx)}\n\n"
        f"### Gatekeeper's Critique\n{directives or critique}\n\n"
        f"### Current Pitch Card\n{draft}\n\n"
        f"### Original Seed Idea\n{_seed(ctx)}\n\n"
        "Address the specific concerns and produce a revised pitch card with only the Title (## heading), "
        "Logline, Summary and Best For sections. No preamble."
    )


def build_verdict_review_prompt(ctx, attempt: int, max_revisions: int, draft: str,
                                previous_critique: str, previous_score: Optional[int]) -> str:
    return (
        f"You previously rejected this pitch ({_score(previous_score)}/100). The Showrunner revised it. "
        f"Revision {attempt} of {max_revisions}.{knowledge_block(ctx)}{options_suffix(ctx)}{_lock(ctx)}\n\n"
        f"### Your Previous Critique\n{previous_critique}\n\n"
        f"### Revised Pitch Card\n{draft}\n\n"
        f"### Original Seed Idea\n{_seed(ctx)}\n\n"
        "Run your full audit again. Upgrade the verdict only if the core problems are genuinely fixed."
    )


def _score(score: Optional[int]) -> str:
    return "?" if score is None else str(score)


# --- Script assessment ---

def production_era_note(options: RunOptions) -> str:
    """Calibrate an assessment to the era a submitted script was produced in."""
    year = options.production_year
    if not year:
        return ""
    return (
        f"\n\nERA CALIBRATION: this script is from {year}. Judge it against the {year} commissioning "
        f"landscape, the technology and science available in {year}, and titles that existed by then. "
        "Do not penalize it for equipment that did not exist yet, give full credit for approaches it "
        "pioneered, and note any influence it had on the genre.\n"
    )


def _era(ctx) -> str:
    return production_era_note(ctx.options)


def _script(ctx) -> str:
    return f"### The Submitted Script\n{ctx.seed_input}\n\n"


def build_market_assessment_prompt(ctx) -> str:
    if ctx.options.production_year:
        era = "in its production year's commissioning landscape"
    else:
        era = "against current buyer mandates"
    return (
        "You are reviewing an EXISTING wildlife script. Do not generate a new concept; analyze what is here."
        f"{_era(ctx)}{knowledge_block(ctx)}{audience_note(ctx.options)}{directive_note(ctx.options)}\n\n"
        f"{_script(ctx)}"
        f"Assess its market positioning {era}. Output a Market Fit Score (1-100), strengths buyers "
        "respond to, its competitive position against named titles, weaknesses, and specific "
        "recommendations."
    )


def build_science_assessment_prompt(ctx) -> str:
    return (
        f"You are reviewing an EXISTING wildlife script for scientific accuracy and novelty.{_era(ctx)}\n\n"
        f"{_script(ctx)}### Market Assessment\n{ctx.get('market_assessment')}\n\n"
        "Output a Scientific Accuracy Score (1-100), a Novelty Score (1-100), factual issues, whether "
        "the biology becomes visual spectacle or reads like a textbook, and how well the B-Story "
        "species is integrated."
    )


def build_logistics_assessment_prompt(ctx) -> str:
    return (
        f"You are reviewing an EXISTING wildlife script for production feasibility.{_era(ctx)}\n\n"
        f"{_script(ctx)}### Science Assessment\n{ctx.get('science_assessment')}\n\n"
        "Output a Feasibility Score (1-100), the camera and visual language it calls for, its sound "
        "design, production risks, a budget assessment and a shooting timeline estimate."
    )


def build_script_critique_prompt(ctx) -> str:
    return (
        "You are reviewing an EXISTING wildlife script submitted for assessment. It was written "
        f"externally, not generated by this team.{_era(ctx)}{_lock(ctx)}\n\n{_script(ctx)}"
        f"### Market Assessment\n{ctx.get('market_assessment')}\n\n"
        f"### Scientific Assessment\n{ctx.get('science_assessment')}\n\n"
        f"### Logistics Assessment\n{ctx.get('logistics_assessment')}\n\n"
        "Stress-test it for clichés (quote the line), cinematic genre energy, proximity and POV, "
        "narrative integrity, sonic identity, and budget and ethics. Give an Overall Score (1-100), "
        "name the genre gap, and end with the directives for what must change."
    )


def build_optimization_plan_prompt(ctx) -> str:
    return (
        "The Commissioning Editor has critiqued the submitted script. Write the plan that lifts it to "
        f"blue-chip cinematic standard.{_era(ctx)}{_lock(ctx)}\n\n"
        f"### Original Script\n{ctx.seed_input}\n\n"
        f"### Editor's Critique\n{ctx.get('script_critique')}\n\n"
        "### Team Assessments\n"
        f"- Market: {ctx.get('market_assessment')}\n"
        f"- Science: {ctx.get('science_assessment')}\n"
        f"- Logistics: {ctx.get('logistics_assessment')}\n\n"
        "Output a genre assignment, ranked priority fixes, a preserve list, camera and sound "
        "directives, the narration style, and rewrite directives for the Story Producer."
    )


def build_optimized_script_prompt(ctx) -> str:
    return (
        "You are OPTIMIZING an existing wildlife script. Preserve the core vision while transforming "
        f"the storytelling.{_era(ctx)}{_lock(ctx)}\n\n"
        f"### Original Script\n{ctx.seed_input}\n\n"
        f"### Showrunner's Optimization Plan\n{ctx.get('optimization_plan')}\n\n"
        "### Key Assessments\n"
        f"- Market: {ctx.get('market_assessment')}\n"
        f"- Science: {ctx.get('science_assessment')}\n\n"
        "Treat the animal as a protagonist in the assigned genre, favor proximity over clinical wide "
        "shots, define the hyper-real soundscape, keep narration sparse, and make the B-Story raise "
        "the stakes. Output the key changes made, then the optimized script: a 3-act outline and a "
        "dual-column A/V script with sound notes and three visual signature moments."
    )


def build_final_review_prompt(ctx) -> str:
    return (
        f"You previously critiqued the original submitted script:\n\n{ctx.get('script_critique')}"
        f"{_lock(ctx)}\n\n"
        f"The team has optimized it. Here is the revised version:\n\n### Optimized Script\n"
        f"{ctx.get('optimized_script')}\n\n"
        "Has the genre gap been closed? Judge camera language, sound design, narration and B-Story "
        "integration, compare against the original, and issue a Greenlight Score."
    )


def build_optimized_script_revision_prompt(ctx, attempt: int, max_revisions: int, draft: str,
                                           critique: str, score: Optional[int], directives: str = "") -> str:
    return (
        f"The optimized script scored {_score(score)}/100, below threshold. Revision attempt {attempt} of "
        f"{max_revisions}. Address this guidance:\n\n{directives or critique}{_era(ctx)}{_lock(ctx)}\n\n"
        f"Your previous version:\n{draft}\n\n"
        f"### Original Script\n{ctx.seed_input}\n\n"
        "Preserve what the original does well. Write the next optimized script in full."
    )


def build_assessment_pitch_deck_prompt(ctx) -> str:
    return (
        f"Compile the final compact pitch card from the assessment and optimization.{_era(ctx)}{_lock(ctx)}\n\n"
        f"### Optimized Script\n{ctx.get('optimized_script')}\n\n"
        f"### Editor's Final Review\n{ctx.get('final_review')}\n\n"
        "Keep the original title if it is strong. Output only the Title (as a ## heading), Logline, "
        "Summary and Best For sections. No preamble, no action items, no routing notes."
    )


# --- Context compaction ---

_SECTION_END = r"(?=\n#{1,3}\s|\n\d+[.)]\s[A-Z]|$)"
_MANDATE_SECTIONS = (
    ("Narrative Strategy", r"Narrative Strategy|Narrative Form|Narrative Architecture", 500),
    ("Platform Fit", r"Platform|Buyer|Target", 300),
    ("Budget", r"Budget", 200),
)


def compact_mandate(mandate: str, fallback_chars: int = 1000) -> str:
    """Keep only the market mandate's narrative, platform and budget sections."""
    mandate = mandate or ""
    sections = []
    for title, heading, limit in _MANDATE_SECTIONS:
        pattern = re.compile(
            rf"(?:#{{1,3}}\s*(?:\d+[.)]\s*)?(?:{heading})[^\n]*\n)([\s\S]*?){_SECTION_END}", re.I
        )
        match = pattern.search(mandate)
        if match:
            sections.append(f"**{title}:** {match.group(1).strip()[:limit]}")
    if sections:
        return "\n\n".join(sections)
    if not mandate:
        return ""
    return mandate[:fallback_chars] + "\n\n[... truncated for context efficiency]"
