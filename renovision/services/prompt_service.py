"""Style prompts the widget offers per trade.

Each prompt completes the sentence "this space, ..." and is passed to the
image provider verbatim (the homeowner can also type their own).
"""

PROMPT_LIBRARY = {
    "bathroom": [
        "transformed into a modern luxury bathroom with walk-in rainfall shower, marble tiles, and brushed brass fixtures",
        "transformed into a contemporary bathroom with freestanding bathtub, natural stone, and minimalist design",
        "transformed into a spa-style bathroom with wood accents, pebble flooring, and ambient lighting",
        "transformed into a compact modern bathroom with space-saving fixtures and white subway tiles",
    ],
    "kitchen": [
        "transformed into a modern kitchen with white shaker cabinets, quartz waterfall island, and stainless steel appliances",
        "transformed into an industrial-style kitchen with exposed brick, dark cabinets, and concrete countertops",
        "transformed into a Scandinavian minimalist kitchen with light wood, white surfaces, and clean lines",
        "transformed into a traditional country kitchen with farmhouse sink, wooden beams, and vintage fixtures",
    ],
    "roofing": [
        "with new slate roof tiles and copper flashing, architectural exterior",
        "with modern standing seam metal roof, contemporary design",
        "with architectural shingles and new dormers, traditional style",
        "with clay tile roofing, Mediterranean style",
    ],
    "joinery": [
        "with custom built-in oak shelving and cabinetry, high-end carpentry",
        "with new hardwood flooring throughout, professional installation",
        "with bespoke wooden staircase and handrails, artisan craftsmanship",
        "with feature wall paneling and timber details",
    ],
    "general": [
        "transformed into an open-plan living space with exposed beams and modern finishes",
        "with extension featuring bi-fold doors and natural light",
        "transformed with loft conversion including skylights and modern insulation",
        "renovated with contemporary interior design, neutral palette, and quality finishes",
    ],
}


def get_prompts(trade):
    """Prompts for a trade; unknown trades get the general set."""
    return PROMPT_LIBRARY.get((trade or "").lower(), PROMPT_LIBRARY["general"])
