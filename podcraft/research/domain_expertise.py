"""
Domain expertise resolver.

Maps a domain tag from topic analysis to an expert persona: requirements the
content must satisfy, a structure template, and the questions an episode in
that domain should answer. Pure lookup; unknown domains get a generic
subject-matter-expert persona.
"""

from podcraft.pipeline_types import DomainExpertise

_EXPERTISE = {
    "fintech": DomainExpertise(
        expert_title="Financial Technology Analyst and Digital Payments Expert",
        description="financial technology innovation, digital transformation, and payment systems",
        requirements=[
            "Technical innovation and system architecture details",
            "Market disruption patterns and adoption statistics",
            "Regulatory landscape and compliance considerations",
            "User experience design and accessibility impact",
            "Economic implications and sustainable business models",
            "Security frameworks and risk management",
        ],
        audience_guidance="Balance technical depth with accessibility for business professionals and general audience",
        structure_template="Problem → Innovation → Technical Implementation → Market Impact → Future Evolution",
        key_questions=[
            "What problem did this technology solve?",
            "How does the technical architecture enable new possibilities?",
            "What drove mass adoption and market acceptance?",
            "How does this impact different user segments?",
            "What are the economic and regulatory implications?",
            "What's next in this technological evolution?",
        ],
    ),
    "healthcare": DomainExpertise(
        expert_title="Healthcare Technology Specialist and Medical Innovation Researcher",
        description="healthcare technology, medical innovation, and patient care transformation",
        requirements=[
            "Patient impact and clinical outcomes evidence",
            "Medical research findings and scientific validation",
            "Healthcare accessibility and equity considerations",
            "Regulatory compliance and safety standards",
            "Integration with existing healthcare systems",
            "Cost-effectiveness and scalability analysis",
        ],
        audience_guidance="Emphasize human impact while maintaining scientific accuracy and accessibility",
        structure_template="Health Challenge → Innovation → Clinical Evidence → Patient Impact → Healthcare System Integration",
        key_questions=[
            "What health challenge does this address?",
            "What's the scientific evidence supporting this innovation?",
            "How does this improve patient outcomes?",
            "What are the accessibility and equity implications?",
            "How does this integrate with existing healthcare?",
            "What's the future of this medical advancement?",
        ],
    ),
    "technology": DomainExpertise(
        expert_title="Technology Innovation Analyst and Digital Transformation Expert",
        description="emerging technologies, digital innovation, and technological transformation",
        requirements=[
            "Technical architecture and implementation details",
            "Innovation drivers and breakthrough moments",
            "User adoption patterns and behavioral change",
            "Industry transformation and competitive dynamics",
            "Scalability challenges and solutions",
            "Future technological implications",
        ],
        audience_guidance="Make complex technology accessible through analogies and real-world applications",
        structure_template="Technical Challenge → Innovation → Implementation → Adoption → Transformation → Future",
        key_questions=[
            "What technical limitation did this overcome?",
            "How does the underlying technology work?",
            "What drove user and industry adoption?",
            "How is this transforming existing industries?",
            "What are the scalability and deployment challenges?",
            "Where is this technology heading next?",
        ],
    ),
    "business": DomainExpertise(
        expert_title="Business Strategy Analyst and Market Innovation Expert",
        description="business innovation, market dynamics, and strategic transformation",
        requirements=[
            "Market dynamics and competitive landscape",
            "Business model innovation and sustainability",
            "Strategic decision-making and execution",
            "Stakeholder impact and value creation",
            "Operational excellence and efficiency gains",
            "Growth strategies and market expansion",
        ],
        audience_guidance="Focus on strategic insights and practical business applications",
        structure_template="Market Opportunity → Strategy → Execution → Results → Lessons → Future Strategy",
        key_questions=[
            "What market opportunity was identified?",
            "What was the strategic approach and execution?",
            "How did this create value for stakeholders?",
            "What were the key success factors and challenges?",
            "What lessons can other businesses apply?",
            "What's the future business landscape?",
        ],
    ),
    "education": DomainExpertise(
        expert_title="Educational Innovation Specialist and Learning Technology Expert",
        description="educational innovation, learning methodologies, and academic transformation",
        requirements=[
            "Learning outcomes and educational effectiveness",
            "Pedagogical approaches and methodologies",
            "Student engagement and accessibility",
            "Technology integration and digital transformation",
            "Educational equity and inclusion",
            "Institutional change and scalability",
        ],
        audience_guidance="Emphasize learning impact and practical applications for educators and learners",
        structure_template="Educational Challenge → Innovation → Implementation → Learning Outcomes → Broader Impact",
        key_questions=[
            "What educational challenge was being addressed?",
            "What innovative approach was developed?",
            "How was this implemented in educational settings?",
            "What were the learning outcomes and effectiveness?",
            "How does this promote educational equity?",
            "What's the future of this educational innovation?",
        ],
    ),
}

GENERIC_EXPERTISE = DomainExpertise(
    expert_title="Subject Matter Expert and Content Specialist",
    description="specialized knowledge and industry expertise",
    requirements=[
        "Comprehensive background and context",
        "Current state analysis and key developments",
        "Stakeholder perspectives and impact assessment",
        "Practical applications and real-world examples",
        "Future trends and implications",
        "Lessons learned and best practices",
    ],
    audience_guidance="Provide comprehensive, accurate, and engaging content appropriate for the intended audience",
    structure_template="Context → Current State → Analysis → Impact → Future Implications",
    key_questions=[
        "What's the essential background context?",
        "What are the current key developments?",
        "Who are the stakeholders and how are they impacted?",
        "What are the practical applications?",
        "What are the future implications?",
        "What lessons can be learned and applied?",
    ],
)

KNOWN_DOMAINS = tuple(_EXPERTISE)


def resolve(domain: str) -> DomainExpertise:
    """Return the expert persona for ``domain`` (case-insensitive)."""
    return _EXPERTISE.get((domain or "").strip().lower(), GENERIC_EXPERTISE)
