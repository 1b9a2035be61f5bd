"""
Reference tables for synthetic data: partner countries, schools, student
names and localized experiment texts.
"""

COUNTRIES = {
    "France": {
        "language": "fr",
        "cities": [
            {
                "name": "La Rochelle",
                "coordinates": (46.1603, -1.1511),
                "schools": [
                    "Lycée Jean Dautet",
                    "Collège Pierre Mendès France",
                    "Lycée René-Josué Valin",
                    "Collège Eugène Fromentin",
                ],
            },
            {
                "name": "Paris",
                "coordinates": (48.8566, 2.3522),
                "schools": [
                    "Lycée Henri-IV",
                    "Collège François Couperin",
                    "Lycée Voltaire",
                    "Collège Victor Hugo",
                ],
            },
            {
                "name": "Aix-en-Provence",
                "coordinates": (43.5297, 5.4474),
                "schools": [
                    "Lycée Vauvenargues",
                    "Collège Arc de Meyran",
                    "Lycée Paul Cézanne",
                ],
            },
        ],
        "students": [
            "Antoine Dubois", "Sarah Moreau", "Lucas Martin", "Emma Leroy",
            "Léa Petit", "Hugo Durand", "Chloé Bernard", "Nathan Fournier",
        ],
    },
    "Belgium": {
        "language": "fr",
        "cities": [
            {
                "name": "Bruxelles",
                "coordinates": (50.8503, 4.3517),
                "schools": [
                    "Athénée Royal d'Uccle I",
                    "Institut Saint-Boniface",
                    "Lycée Français Jean Monnet",
                    "Collège Saint-Pierre",
                ],
            },
        ],
        "students": [
            "Nicolas Janssen", "Louise Van Der Berg", "Alexandre Peeters",
            "Sophie Hendricks", "Maxime Claes", "Emma Willems",
        ],
    },
    "Spain": {
        "language": "es",
        "cities": [
            {
                "name": "Madrid",
                "coordinates": (40.4168, -3.7038),
                "schools": [
                    "IES San Mateo",
                    "Colegio San Patricio",
                    "IES Ramiro de Maeztu",
                    "Lycée Français de Madrid",
                ],
            },
        ],
        "students": [
            "Pablo García", "Sofía Rodríguez", "Diego Martínez",
            "Valentina López", "Mateo Sánchez", "Lucía Flores",
        ],
    },
    "Italy": {
        "language": "it",
        "cities": [
            {
                "name": "Napoli",
                "coordinates": (40.8518, 14.2681),
                "schools": [
                    "Liceo Classico Umberto I",
                    "IIS Galileo Ferraris",
                    "ISIS Europa",
                    "Liceo Scientifico A. Labriola",
                ],
            },
        ],
        "students": [
            "Marco Rossi", "Giulia Bianchi", "Francesco Romano",
            "Sofia Esposito", "Chiara Ricci", "Matteo Greco",
        ],
    },
    "Bulgaria": {
        "language": "en",
        "cities": [
            {
                "name": "Sofia",
                "coordinates": (42.6977, 23.3219),
                "schools": [
                    "American College of Sofia",
                    "91 German Language School",
                    "First English Language School",
                    "French School Victor Hugo",
                ],
            },
        ],
        "students": [
            "Viktor Petrov", "Elena Dimitrova", "Aleksandar Georgiev",
            "Maria Ivanova", "Teodora Nikolova", "Hristo Vasilev",
        ],
    },
}

STUDENT_GROUPS = ["Groupe A", "Groupe B", "Groupe C"]

DEFAULT_CATEGORY = "Data Analysis"

TRANSLATIONS = {
    "fr": {
        "title": "Étude {protocol} - {school}",
        "description": "Mesure et analyse dans le cadre du protocole {protocol} à {school}",
        "hypotheses": {
            "Air Quality": [
                "La qualité de l'air varie selon les heures et les zones",
                "Les activités humaines impactent directement la qualité de l'air intérieur",
            ],
            "Sound": [
                "Le niveau sonore influence la concentration et l'apprentissage",
                "Les sources de bruit varient selon les zones urbaines",
            ],
            "Light": [
                "L'éclairage artificiel perturbe les rythmes circadiens",
                "Les variations de lumière naturelle affectent le bien-être",
            ],
            "Energy": [
                "La consommation énergétique suit des patterns prévisibles",
                "L'efficacité énergétique dépend des comportements d'usage",
            ],
            "Temperature": [
                "L'isolation thermique réduit les pertes de chaleur",
                "Les îlots de chaleur urbains créent des microclimats",
            ],
            "Biodiversity": [
                "La diversité des espèces reflète la santé de l'écosystème urbain",
                "Les corridors verts favorisent la circulation des espèces",
            ],
            "AI": [
                "L'intelligence artificielle peut automatiser l'analyse de données complexes",
                "La classification automatique améliore l'efficacité du tri et de l'analyse",
            ],
            "Mobility": [
                "La régulation du trafic réduit l'impact environnemental",
                "Les modes de transport alternatifs diminuent la pollution",
            ],
            "IoT": [
                "Les objets connectés permettent une collecte de données en temps réel",
                "Les capteurs intelligents optimisent la gestion des ressources",
            ],
            "Data Analysis": [
                "L'analyse de données révèle des corrélations inattendues",
                "Le contexte est essentiel pour interpréter correctement les données",
            ],
        },
        "methodologies": {
            "Air Quality": ["Placement de capteurs de qualité de l'air dans différentes zones et mesures continues"],
            "Sound": ["Cartographie sonore avec géolocalisation des sources de bruit"],
            "Light": ["Mesures d'intensité lumineuse avec luxmètres et analyse spectrale"],
            "Energy": ["Installation de compteurs intelligents et analyse des consommations"],
            "Temperature": ["Cartographie thermique des bâtiments pour identifier les déperditions"],
            "Biodiversity": ["Comptage et identification des espèces par observation directe et photographique"],
            "AI": ["Utilisation d'APIs de vision artificielle pour l'analyse d'images"],
            "Mobility": ["Comptage du trafic avec capteurs automatiques et analyse des flux"],
            "IoT": ["Intégration de capteurs multiples et transmission de données sans fil"],
            "Data Analysis": ["Collecte de données multi-sources et nettoyage des jeux de données"],
        },
    },
    "es": {
        "title": "Estudio {protocol} - {school}",
        "description": "Medición y análisis en el marco del protocolo {protocol} en {school}",
        "hypotheses": {
            "Air Quality": [
                "La calidad del aire varía según las horas y las zonas",
                "Las actividades humanas impactan directamente la calidad del aire interior",
            ],
            "Sound": [
                "El nivel sonoro influye en la concentración y el aprendizaje",
                "Las fuentes de ruido varían según las zonas urbanas",
            ],
            "Light": [
                "La iluminación artificial altera los ritmos circadianos",
                "Las variaciones de luz natural afectan el bienestar",
            ],
            "Energy": [
                "El consumo energético sigue patrones predecibles",
                "La eficiencia energética depende de los comportamientos de uso",
            ],
            "Temperature": [
                "El aislamiento térmico reduce las pérdidas de calor",
                "Las islas de calor urbanas crean microclimas",
            ],
            "Biodiversity": [
                "La diversidad de especies refleja la salud del ecosistema urbano",
                "Los corredores verdes favorecen la circulación de especies",
            ],
            "AI": [
                "La inteligencia artificial puede automatizar el análisis de datos complejos",
                "La clasificación automática mejora la eficiencia del análisis",
            ],
            "Mobility": [
                "La regulación del tráfico reduce el impacto ambiental",
                "Los modos de transporte alternativos disminuyen la contaminación",
            ],
            "IoT": [
                "Los objetos conectados permiten una recopilación de datos en tiempo real",
                "Los sensores inteligentes optimizan la gestión de recursos",
            ],
            "Data Analysis": [
                "El análisis de datos revela correlaciones inesperadas",
                "El contexto es esencial para interpretar correctamente los datos",
            ],
        },
        "methodologies": {
            "Air Quality": ["Colocación de sensores de calidad del aire en diferentes zonas y mediciones continuas"],
            "Sound": ["Cartografía sonora con geolocalización de fuentes de ruido"],
            "Light": ["Mediciones de intensidad lumínica con luxómetros y análisis espectral"],
            "Energy": ["Instalación de contadores inteligentes y análisis de consumos"],
            "Temperature": ["Cartografía térmica de edificios para identificar pérdidas"],
            "Biodiversity": ["Conteo e identificación de especies por observación directa y fotográfica"],
            "AI": ["Uso de APIs de visión artificial para análisis de imágenes"],
            "Mobility": ["Conteo de tráfico con sensores automáticos y análisis de flujos"],
            "IoT": ["Integración de sensores múltiples y transmisión de datos inalámbrica"],
            "Data Analysis": ["Recopilación de datos multi-fuente y limpieza de conjuntos de datos"],
        },
    },
    "it": {
        "title": "Studio {protocol} - {school}",
        "description": "Misurazione e analisi nel quadro del protocollo {protocol} presso {school}",
        "hypotheses": {
            "Air Quality": [
                "La qualità dell'aria varia secondo le ore e le zone",
                "Le attività umane impattano direttamente la qualità dell'aria interna",
            ],
            "Sound": [
                "Il livello sonoro influenza la concentrazione e l'apprendimento",
                "Le fonti di rumore variano secondo le zone urbane",
            ],
            "Light": [
                "L'illuminazione artificiale disturba i ritmi circadiani",
                "Le variazioni di luce naturale influenzano il benessere",
            ],
            "Energy": [
                "Il consumo energetico segue modelli prevedibili",
                "L'efficienza energetica dipende dai comportamenti d'uso",
            ],
            "Temperature": [
                "L'isolamento termico riduce le perdite di calore",
                "Le isole di calore urbane creano microclimi",
            ],
            "Biodiversity": [
                "La diversità delle specie riflette la salute dell'ecosistema urbano",
                "I corridoi verdi favoriscono la circolazione delle specie",
            ],
            "AI": [
                "L'intelligenza artificiale può automatizzare l'analisi di dati complessi",
                "La classificazione automatica migliora l'efficienza dell'analisi",
            ],
            "Mobility": [
                "La regolazione del traffico riduce l'impatto ambientale",
                "Le modalità di trasporto alternative diminuiscono l'inquinamento",
            ],
            "IoT": [
                "Gli oggetti connessi permettono una raccolta dati in tempo reale",
                "I sensori intelligenti ottimizzano la gestione delle risorse",
            ],
            "Data Analysis": [
                "L'analisi dei dati rivela correlazioni inaspettate",
                "Il contesto è essenziale per interpretare correttamente i dati",
            ],
        },
        "methodologies": {
            "Air Quality": ["Posizionamento di sensori di qualità dell'aria in diverse zone e misurazioni continue"],
            "Sound": ["Cartografia sonora con geolocalizzazione delle fonti di rumore"],
            "Light": ["Misurazioni di intensità luminosa con luxmetri e analisi spettrale"],
            "Energy": ["Installazione di contatori intelligenti e analisi dei consumi"],
            "Temperature": ["Cartografia termica degli edifici per identificare le dispersioni"],
            "Biodiversity": ["Conteggio e identificazione delle specie per osservazione diretta e fotografica"],
            "AI": ["Uso di API di visione artificiale per l'analisi delle immagini"],
            "Mobility": ["Conteggio del traffico con sensori automatici e analisi dei flussi"],
            "IoT": ["Integrazione di sensori multipli e trasmissione dati wireless"],
            "Data Analysis": ["Raccolta dati multi-sorgente e pulizia dei dataset"],
        },
    },
    "en": {
        "title": "{protocol} Study - {school}",
        "description": "Measurement and analysis within the {protocol} protocol at {school}",
        "hypotheses": {
            "Air Quality": [
                "Air quality varies according to time and zones",
                "Human activities directly impact indoor air quality",
            ],
            "Sound": [
                "Sound level influences concentration and learning",
                "Noise sources vary according to urban zones",
            ],
            "Light": [
                "Artificial lighting disrupts circadian rhythms",
                "Natural light variations affect well-being",
            ],
            "Energy": [
                "Energy consumption follows predictable patterns",
                "Energy efficiency depends on usage behaviors",
            ],
            "Temperature": [
                "Thermal insulation reduces heat loss",
                "Urban heat islands create microclimates",
            ],
            "Biodiversity": [
                "Species diversity reflects urban ecosystem health",
                "Green corridors favor species circulation",
            ],
            "AI": [
                "Artificial intelligence can automate complex data analysis",
                "Automatic classification improves analysis efficiency",
            ],
            "Mobility": [
                "Traffic regulation reduces environmental impact",
                "Alternative transport modes decrease pollution",
            ],
            "IoT": [
                "Connected objects enable real-time data collection",
                "Smart sensors optimize resource management",
            ],
            "Data Analysis": [
                "Data analysis reveals unexpected correlations",
                "Context is essential for correctly interpreting data",
            ],
        },
        "methodologies": {
            "Air Quality": ["Placement of air quality sensors in different zones and continuous measurements"],
            "Sound": ["Sound mapping with geolocation of noise sources"],
            "Light": ["Light intensity measurements with lux meters and spectral analysis"],
            "Energy": ["Installation of smart meters and consumption analysis"],
            "Temperature": ["Thermal mapping of buildings to identify heat loss"],
            "Biodiversity": ["Counting and identification of species by direct observation and photography"],
            "AI": ["Use of computer vision APIs for image analysis"],
            "Mobility": ["Traffic counting with automatic sensors and flow analysis"],
            "IoT": ["Integration of multiple sensors and wireless data transmission"],
            "Data Analysis": ["Multi-source data collection and dataset cleaning"],
        },
    },
}
