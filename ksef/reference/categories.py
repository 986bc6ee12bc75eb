"""
Fixed list of project categories.
"""
from typing import Dict, List


PROJECT_CATEGORIES_WITH_DESCRIPTIONS: Dict[str, str] = {
    "Mathematical Science": "Encompasses areas like Algebra, Analysis, Applied Mathematics, Geometry, Probability & Statistics, and related topics.",
    "Physics": "Covers Astronomy, Atoms, Molecules, Solids, Instrumentation & Electronics, Magnetism & Electromagnetism, Particle Physics, Optics, Lasers, and Theoretical Physics.",
    "Computer Science": "Includes Algorithms, Databases, Artificial Intelligence, Networking & Communications, Computational Science, Graphics, Computer Systems, Operating Systems, Programming, and Software Engineering.",
    "Chemistry": "Involves Analytical, General, Inorganic, Organic, and Physical Chemistry.",
    "Biology and Biotechnology": "Covers Cellular Biology, Molecular Genetics, Immunology, Antibiotics, Antimicrobials, Bacteriology, Virology, Medicine & Health Sciences, and Photosynthesis.",
    "Energy and Transportation": "Encompasses Aerospace, Alternative Fuels, Fossil Fuel Energy, Renewable Energy, Space, Air & Marine, Solar, Energy Conservation, and similar sustainability topics.",
    "Environmental Science and Management": "Focuses on Bioremediation, Ecosystems Management, Environmental Engineering, Land Resource Management, Recycling, Waste Management, Pollution, Blue Economy, Soil Conservation, and Landscaping.",
    "Agriculture": "Covers Agronomy, Plant Science & Systematics, Plant Evolution, Animal Sciences (e.g., Animal Husbandry), and Ecology.",
    "Food Technology, Textiles & Home Economics": "Includes Food Product Development, Process Design, Food Engineering, Food Microbiology, Food Packaging & Preservation, Food Safety, Diet, Textile Design, Interior Design, and Decoration.",
    "Engineering": "Involves Design, Building, Engine & Machine Use, Structures, Apparatus, Manufacturing Processes, Aeronautical Engineering, Vehicle Development, and New Product Development.",
    "Technology and Applied Technology": "Focuses on Appropriate Technology, Innovations in Science & Industry, Knowledge Economy, and Research & Development.",
    "Behavioral Science": "Encompasses Psychology, Animal Conservation, Behavior Change, and Disaster & Stress Response Management.",
    "Robotics": "Involves the conception, engineering, design, manufacture, and operation of robots, including automation and AI integration.",
}

PROJECT_CATEGORIES: List[str] = list(PROJECT_CATEGORIES_WITH_DESCRIPTIONS)


def is_valid_category(category: str) -> bool:
    return category in PROJECT_CATEGORIES_WITH_DESCRIPTIONS
