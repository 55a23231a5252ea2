"""Centralized prompt registry for step generation.

This module contains versioned prompt templates used by the workflow steps.
Each prompt is a static string constant with no dynamic logic.

Naming convention: <PURPOSE>_PROMPT_V<NUMBER>

Placeholders:
- {prompt}: the user's project description
- {label}: the phase label (system prompt only)
- {code}: generated code under review (code review prompt only)

Version History:
- V1: Initial prompt set for the SDLC workflow
"""

SYSTEM_PROMPT_V1 = (
    "You are an expert assistant specialized in the Software Development Life Cycle. "
    "Your task is to provide a detailed, professional, and well-structured output for "
    "the '{label}' phase. The response should be in Markdown format."
)

CODE_SYSTEM_PROMPT_V1 = (
    "You are an expert assistant specialized in the Software Development Life Cycle. "
    "Your task is to provide a detailed, professional, and well-structured output for "
    "the '{label}' phase. Provide only the raw HTML code without any markdown code "
    "blocks, backticks, or formatting markers."
)

USER_STORIES_PROMPT_V1 = (
    "Generate a comprehensive and detailed set of user stories for a project described "
    "as: '{prompt}'. For each user story, include a title, user role, goal, and detailed "
    "acceptance criteria following the 'Given-When-Then' format. Group stories by epic "
    "or feature where applicable."
)

DESIGN_DOCS_PROMPT_V1 = (
    "Create a functional and technical design document for: '{prompt}'. The functional "
    "section should include user flows and detailed feature specifications. The "
    "technical section should propose a system architecture, recommend a technology "
    "stack, and define the data models with fields and relationships."
)

CODE_GENERATION_PROMPT_V1 = (
    "Generate a complete, fully functional HTML prototype/application for: '{prompt}'. "
    "Create a comprehensive single-file HTML document that includes: "
    "1) **Complete HTML Structure** - All necessary semantic HTML elements, forms, "
    "navigation, content sections. "
    "2) **Advanced Styling** - Beautiful responsive design using Tailwind CSS classes "
    "(loaded from CDN), custom CSS for animations, gradients, and modern UI patterns. "
    "3) **Functional JavaScript** - Interactive features, form handling, data "
    "management, local storage integration, API simulation, dynamic content updates, "
    "event handlers, and user interactions. "
    "4) **Modern Features** - Progressive enhancement, accessibility features, "
    "responsive design, smooth animations, loading states, error handling. "
    "5) **Working Prototype** - All buttons, forms, navigation, and interactive elements "
    "should be fully functional with realistic data and workflows. "
    "Provide only the raw HTML code without any markdown formatting. Return the "
    "complete HTML document starting with <!DOCTYPE html> and ending with </html>."
)

CODE_REVIEW_PROMPT_V1 = """Act as a senior software engineer and perform a thorough code review on the following generated code:

PROJECT CONTEXT: {prompt}

GENERATED CODE TO REVIEW:
```html
{code}
```

Please provide a comprehensive code review covering:
1. **Code Quality**: Structure, readability, maintainability
2. **Security**: Potential vulnerabilities and security best practices
3. **Performance**: Optimization opportunities and performance considerations
4. **Best Practices**: Adherence to modern web development standards
5. **Functionality**: Logic review and potential bugs
6. **Accessibility**: WCAG compliance and accessibility improvements
7. **Recommendations**: Specific suggestions for improvement

Format your response with clear sections and actionable feedback."""

TEST_CASES_PROMPT_V1 = (
    "Create a detailed set of test cases for the project: '{prompt}'. Include a mix of "
    "unit tests, integration tests, and end-to-end tests. For each test case, provide a "
    "test ID, a description, steps to reproduce, expected results, and define if it's "
    "a positive or negative test."
)

DEPLOYMENT_PROMPT_V1 = (
    "Create a detailed, step-by-step deployment plan for the application: '{prompt}'. "
    "The plan should cover pre-deployment checks, environment setup, deployment "
    "strategy (e.g., blue-green), the deployment process itself, and a comprehensive "
    "rollback strategy in case of failure."
)

FEEDBACK_SUFFIX_V1 = "\n\nPlease incorporate this feedback: {feedback}"

NO_CODE_FOR_REVIEW_NOTICE = (
    "⚠️ No code available for review. Please generate code in the "
    "\"Code Generation\" step first."
)
