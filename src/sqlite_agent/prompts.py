TOOL_CATALOG_HEADER = "Available tools (JSON):\n"

SCHEMA_HEADER = "Table columns:\n"

TEXT_MODE_PROMPT = """You are an AI agent that can use tools to accomplish tasks.

{tool_catalog}
User goal: {goal}

To use a tool, respond with EXACTLY this format:
TOOL_CALL: tool_name
ARGS: {{"param1": "value1", "param2": "value2"}}

After the tool executes, you'll see the result and can call another tool or provide a final answer.
Type DONE only when you have completed the task."""

TABLE_MODE_PROMPT = """You are a tool-calling agent. You MUST respond with ONLY a tool call, nothing else.

{tool_catalog}

TARGET DATA SCHEMA:
You need to collect data that will populate a table with these columns:
{schema}
Make sure to search for properties/items that have information matching these columns.

IMPORTANT RULES:
1. Your response must be ONLY in this EXACT JSON format:
   {{"tool": "tool_name", "args": {{"param1": "value1", "param2": 123}}}}
2. Do NOT include explanations, reasoning, or any other text
3. Do NOT use markdown code blocks or backticks
4. ONLY use the exact parameter names shown in the tool signatures above
5. Use proper JSON: keys in "quotes", boolean as true/false (lowercase), strings in "quotes"
6. You can make MULTIPLE tool calls across iterations to gather detailed data
7. Type DONE only when you have retrieved sufficient detailed information

CRITICAL: Extract actual values from previous tool responses
CORRECT: {{"args": {{"name": "sqlite-agent"}}}}   (literal value from response)
WRONG:   {{"args": {{"name": "{{{{items[0].name}}}}"}}}}  (template syntax - will fail!)
WRONG:   {{"args": {{"name": "<name-from-search>"}}}} (placeholder - will fail!)
When you receive tool responses, read the actual values and use them directly.

Task: {goal}

Respond with ONLY the JSON tool call:"""  # noqa: E501

EXTRACTION_PROMPT = """Extract structured data from the following information and format it as a JSON array.

{schema}

IMPORTANT:
- Return ONLY a JSON array of objects
- Each object must have these EXACT keys (matching column names):
{schema}
- Extract ALL available data that matches the schema
- Use null for missing values
- Do NOT include embedding columns if present

CRITICAL ID EXTRACTION RULE:
If the schema has an 'id' column, look in the JSON data for fields like:
- "id", "listing_id", "property_id", "item_id", etc.
Extract the ACTUAL numeric/string ID value from the source data.
Example: if you see {{"id": 123456789, "title": "Rome Apartment"}}, use 123456789
NEVER use 0, 1, 2, 3 as IDs - use the real IDs from the data!

Data to extract:
{history}

Return ONLY the JSON array:"""

EMBEDDING_MAPPING_PROMPT = """Table has columns: {columns}

For the '{embedding_column}' embedding column, which source columns should be embedded together?
Return ONLY comma-separated column names, no explanation.
Example: title, description

Relevant columns: """
