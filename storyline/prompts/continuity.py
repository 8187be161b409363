CONTINUITY_EXTRACTION_PROMPT_V1 = """
Role: Continuity editor for a serialized novel.
Task: Analyze the chapter below and extract the facts the NEXT chapter must respect.

Chapter Title: {{chapter_title}}

Content:
{{chapter_content}}

Strict Guidelines:
1. Output MUST be a single valid JSON object and nothing else.
2. Write all string values in {{language}}; keep the JSON keys exactly as listed.

Return a JSON object with these exact keys:
- summary: (string) A concise 50-100 word summary of WHAT happened.
- key_events: (string[]) 3-5 major plot points or revelations, in the order they happened.
- items: (string[]) Key items acquired, lost, or significantly used (e.g. "Found the rusty key", "Lost the map").
- location: (string) EXACTLY where the chapter ends. Be specific about the immediate surroundings (e.g. "Standing in front of the old oak door in the basement"). Never answer with something vague like "outside".
- characters: (string[]) Characters who were ACTIVE in this chapter (speaking, acting or physically present). Do not list characters who were only mentioned.
"""
